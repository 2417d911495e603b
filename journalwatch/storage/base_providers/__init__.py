from .jw_base_data_provider import JWBaseDataProvider

__all__ = ["JWBaseDataProvider"]
