from .config import ServiceConfig, configure_logging, load_config
from .entity_store import EntityStoreError, JsonPatientSource, PatientBaseline, PatientRegistry
from .run_store import InMemoryRunStore

__all__ = [
    "EntityStoreError",
    "InMemoryRunStore",
    "JsonPatientSource",
    "PatientBaseline",
    "PatientRegistry",
    "ServiceConfig",
    "configure_logging",
    "load_config",
]
