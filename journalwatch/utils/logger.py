import logging

# one format for every journalwatch module; applied on first import
logging.basicConfig(
    level = logging.INFO,
    format = "%(levelname)s %(filename)s func:%(funcName)s line %(lineno)d : %(message)s"
)

def get_logger(name:str,level=None)->logging.Logger:
    """
    args:
        name: module name (__name__)
        level: overrides the root level for this logger only
    """
    logger = logging.getLogger(name)
    if level:
        logger.setLevel(level)
    return logger
