"""
Database configuration
Complete table metadata; DatabaseManager builds the schema from it
"""

# Activity columns, shared by the live and the sandbox activity tables
ACTIVITY_COLUMNS = {
    'id': {
        'type': 'TEXT',
        'constraints': ['PRIMARY KEY'],
        'comment': 'activity id (unique within one store only)'
    },
    'user_id': {
        'type': 'TEXT',
        'constraints': ['NOT NULL'],
        'comment': 'owning user'
    },
    'source': {
        'type': 'TEXT',
        'constraints': ['NOT NULL'],
        'comment': 'source tool key, see sources.yaml (github, jira ...)'
    },
    'source_id': {
        'type': 'TEXT',
        'constraints': ['NOT NULL'],
        'comment': 'id of the object inside the source tool (PR number, ticket key ...)'
    },
    'source_url': {
        'type': 'TEXT',
        'constraints': [],
        'comment': 'link back to the source tool'
    },
    'title': {
        'type': 'TEXT',
        'constraints': ['NOT NULL'],
        'comment': 'title'
    },
    'description': {
        'type': 'TEXT',
        'constraints': [],
        'comment': 'description'
    },
    'timestamp': {
        'type': 'TEXT',
        'constraints': ['NOT NULL'],
        'comment': 'UTC instant, YYYY-MM-DD HH:MM:SS.ffffff'
    },
    'cross_tool_refs': {
        'type': 'TEXT',
        'constraints': ["DEFAULT '[]'"],
        'comment': 'JSON list of references into other tools (e.g. ["PROJ-12"])'
    },
    'raw_data': {
        'type': 'TEXT',
        'constraints': [],
        'comment': 'JSON object with source specific payload'
    },
}

ACTIVITY_INDEXES = [
    {'suffix': 'user_timestamp', 'columns': ['user_id', 'timestamp']},
    {'suffix': 'user_source', 'columns': ['user_id', 'source']},
]


def _activity_table_config(table_name: str) -> dict:
    return {
        'table_name': table_name,
        'columns': ACTIVITY_COLUMNS,
        'table_constraints': [],
        'indexes': [
            {'name': f"idx_{table_name}_{index['suffix']}", 'columns': index['columns']}
            for index in ACTIVITY_INDEXES
        ],
        'timestamps': True
    }


# live activity store
TOOL_ACTIVITY_CONFIG = _activity_table_config('tool_activity')

# sandbox activity store (same shape, disjoint rows)
SANDBOX_TOOL_ACTIVITY_CONFIG = _activity_table_config('sandbox_tool_activity')

# journal entries
JOURNAL_ENTRY_CONFIG = {
    'table_name': 'journal_entry',
    'columns': {
        'id': {
            'type': 'TEXT',
            'constraints': ['PRIMARY KEY'],
            'comment': 'entry id'
        },
        'author_id': {
            'type': 'TEXT',
            'constraints': ['NOT NULL'],
            'comment': 'owning user'
        },
        'title': {
            'type': 'TEXT',
            'constraints': ['NOT NULL'],
            'comment': 'title'
        },
        'description': {
            'type': 'TEXT',
            'constraints': [],
            'comment': 'description'
        },
        'source_mode': {
            'type': 'TEXT',
            'constraints': ['NOT NULL'],
            'comment': 'sandbox / live, fixed at creation'
        },
        'grouping_method': {
            'type': 'TEXT',
            'constraints': ["DEFAULT 'manual'"],
            'comment': 'time / cluster / manual'
        },
        'time_range_start': {
            'type': 'TEXT',
            'constraints': [],
            'comment': 'optional range start (UTC)'
        },
        'time_range_end': {
            'type': 'TEXT',
            'constraints': [],
            'comment': 'optional range end (UTC)'
        },
        'updated_at': {
            'type': 'TEXT',
            'constraints': [],
            'comment': 'last edit of the entry (UTC); drives cache validators'
        },
    },
    'table_constraints': [
        "CHECK(source_mode IN ('sandbox', 'live'))",
        "CHECK(grouping_method IN ('time', 'cluster', 'manual'))",
    ],
    'indexes': [
        {'name': 'idx_journal_entry_author_mode', 'columns': ['author_id', 'source_mode']},
    ],
    'timestamps': True
}

# ordered activity references of an entry
JOURNAL_ENTRY_ACTIVITY_CONFIG = {
    'table_name': 'journal_entry_activity',
    'columns': {
        'entry_id': {
            'type': 'TEXT',
            'constraints': ['NOT NULL'],
            'comment': 'journal_entry.id'
        },
        'activity_id': {
            'type': 'TEXT',
            'constraints': ['NOT NULL'],
            'comment': 'activity id inside the store named by the entry source_mode'
        },
        'position': {
            'type': 'INTEGER',
            'constraints': ['NOT NULL'],
            'comment': 'order inside the entry'
        },
    },
    'table_constraints': ['PRIMARY KEY (entry_id, activity_id)'],
    'indexes': [
        {'name': 'idx_journal_entry_activity_activity', 'columns': ['activity_id']},
    ],
    'timestamps': False
}


TABLE_CONFIGS = {
    'tool_activity': TOOL_ACTIVITY_CONFIG,
    'sandbox_tool_activity': SANDBOX_TOOL_ACTIVITY_CONFIG,
    'journal_entry': JOURNAL_ENTRY_CONFIG,
    'journal_entry_activity': JOURNAL_ENTRY_ACTIVITY_CONFIG,
}


def get_table_config(table_name: str) -> dict:
    """
    Get the configuration of one table

    Raises:
        ValueError: unknown table
    """
    if table_name not in TABLE_CONFIGS:
        raise ValueError(f"No configuration for table '{table_name}'")
    return TABLE_CONFIGS[table_name]


def get_table_columns(table_name: str) -> list:
    """Column names of a table (timestamps excluded)"""
    config = get_table_config(table_name)
    return list(config['columns'].keys())
