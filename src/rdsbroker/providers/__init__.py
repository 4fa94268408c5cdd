from rdsbroker.providers.base import DatabaseProvider
from rdsbroker.providers.rds import RDSProvider, is_throttling_error

__all__ = ["DatabaseProvider", "RDSProvider", "is_throttling_error"]
