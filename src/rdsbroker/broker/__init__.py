from rdsbroker.broker.binding import BindingResolver, Credentials, credentials_for
from rdsbroker.broker.dashboard import dashboard_url
from rdsbroker.broker.deprovisioning import (
    DeprovisioningEngine,
    delete_parameters,
    final_snapshot_name,
)
from rdsbroker.broker.events import BrokerRequest, EventBroker, register_rds_handlers
from rdsbroker.broker.provisioning import (
    ProvisioningEngine,
    ProvisionResult,
    generate_instance_identifier,
    generate_password,
)
from rdsbroker.broker.service import RDSServiceBroker

__all__ = [
    "BindingResolver",
    "BrokerRequest",
    "Credentials",
    "DeprovisioningEngine",
    "EventBroker",
    "ProvisionResult",
    "ProvisioningEngine",
    "RDSServiceBroker",
    "credentials_for",
    "dashboard_url",
    "delete_parameters",
    "final_snapshot_name",
    "generate_instance_identifier",
    "generate_password",
    "register_rds_handlers",
]
