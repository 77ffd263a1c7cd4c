"""Remote data access for the lab explorer."""

from .catalog import CatalogClient
from .hal import HalClient
from .gateway import (
    RemoteDataGateway,
    GatewayError,
    Person,
    CatalogResearcher,
    ExternalCollaborator,
)

__all__ = [
    "CatalogClient",
    "HalClient",
    "RemoteDataGateway",
    "GatewayError",
    "Person",
    "CatalogResearcher",
    "ExternalCollaborator",
]
