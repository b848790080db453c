"""Application services for import plugins."""

from attic_import.services.import_service import ImportService, PluginSummary
from attic_import.services.provisioner import AttributeProvisioner, DisableResult, ProvisionResult

__all__ = [
    "AttributeProvisioner",
    "DisableResult",
    "ImportService",
    "PluginSummary",
    "ProvisionResult",
]
