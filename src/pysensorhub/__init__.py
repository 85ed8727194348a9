"""pysensorhub - Rate-limited telemetry collector with an async client/broker protocol."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pysensorhub")
except PackageNotFoundError:
    __version__ = "0+local"
from pysensorhub.broker import ServiceBroker
from pysensorhub.capabilities import Capability, CapabilityTable
from pysensorhub.channel import ChannelListener, ClientChannel, NullListener, ReplyChannel
from pysensorhub.config import DeviceProfile, HubConfig
from pysensorhub.exceptions import (
    HubChannelError,
    HubConfigError,
    HubError,
    HubPropagationError,
    HubProtocolError,
    HubTransportError,
    HubUnavailableError,
    HubValidationError,
)
from pysensorhub.models import (
    Message,
    MessageType,
    PayloadKey,
    ProviderStatus,
    Reading,
    Snapshot,
    SourceInfo,
)
from pysensorhub.platform import (
    AllowAllPermissions,
    Permission,
    PermissionGate,
    PlatformCellularSource,
    PlatformLocationSource,
    PlatformSensorSource,
)
from pysensorhub.sinks import HttpSnapshotSink, MqttSnapshotSink
from pysensorhub.snapshot import SnapshotBuilder
from pysensorhub.state.policy import IntervalUnit

__all__ = [
    "__version__",
    "AllowAllPermissions",
    "Capability",
    "CapabilityTable",
    "ChannelListener",
    "ClientChannel",
    "DeviceProfile",
    "HttpSnapshotSink",
    "HubChannelError",
    "HubConfig",
    "HubConfigError",
    "HubError",
    "HubPropagationError",
    "HubProtocolError",
    "HubTransportError",
    "HubUnavailableError",
    "HubValidationError",
    "IntervalUnit",
    "Message",
    "MessageType",
    "MqttSnapshotSink",
    "NullListener",
    "PayloadKey",
    "Permission",
    "PermissionGate",
    "PlatformCellularSource",
    "PlatformLocationSource",
    "PlatformSensorSource",
    "ProviderStatus",
    "Reading",
    "ReplyChannel",
    "ServiceBroker",
    "Snapshot",
    "SnapshotBuilder",
    "SourceInfo",
]
