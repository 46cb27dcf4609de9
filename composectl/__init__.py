"""composectl: a compose control client with a deterministic fake.

Example usage:
    from composectl import CancelToken, FakeComposeClient, ServiceUpSpec

    client = FakeComposeClient(work_dir="/src/my-app")
    spec = ServiceUpSpec(service="web")

    client.up(spec, should_build=False)

    feed = client.log_feed("web")
    feed.write("listening on :8000")
    feed.finish()

    with client.stream_logs(spec, CancelToken()) as stream:
        for line in stream:
            print(line, end="")
"""

__version__ = "0.1.0"

from composectl._cancel import CancelToken
from composectl.client import ComposeClient
from composectl.diagnostics import is_compose_v2, parse_version
from composectl.errors import (
    ComposeError,
    ComposeRuntimeError,
    ConfigParseError,
    InjectedFault,
    OverflowFault,
    SerializationError,
)
from composectl.events import Event, EventBus, EventSubscription, decode_event, encode_event
from composectl.fake import FakeComposeClient
from composectl.logs import LogFeed, LogStream
from composectl.models import ComposeProject, DownCall, RmCall, ServiceUpSpec, UpCall
from composectl.project import (
    build_environment,
    derive_project_name,
    load_project,
    normalize_project_name,
)
from composectl.schema import StructuredProject

__all__ = [
    "CancelToken",
    "ComposeClient",
    "ComposeError",
    "ComposeProject",
    "ComposeRuntimeError",
    "ConfigParseError",
    "DownCall",
    "Event",
    "EventBus",
    "EventSubscription",
    "FakeComposeClient",
    "InjectedFault",
    "LogFeed",
    "LogStream",
    "OverflowFault",
    "RmCall",
    "SerializationError",
    "ServiceUpSpec",
    "StructuredProject",
    "UpCall",
    "build_environment",
    "decode_event",
    "derive_project_name",
    "encode_event",
    "is_compose_v2",
    "load_project",
    "normalize_project_name",
    "parse_version",
]
