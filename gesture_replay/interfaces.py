"""Narrow interfaces to the collaborators that live outside the pipeline."""

from typing import Any, Dict, Protocol, Union, runtime_checkable

HierarchyDocument = Union[str, bytes, Dict[str, Any]]


@runtime_checkable
class Transport(Protocol):
    """Fire-and-forget command channel to a remote device agent.

    Inbound results are pushed back by the transport owner through
    ``ExecutionCorrelator.handle_message``; the correlator does not care
    whether they arrive by callback, socket message or polling.
    """

    async def send(self, command: Dict[str, Any]) -> None:
        ...


@runtime_checkable
class HierarchySource(Protocol):
    """On-demand access to the target's UI hierarchy and screen.

    Both calls may take from hundreds of milliseconds to a few seconds and
    must not be polled.
    """

    async def fetch_hierarchy(self) -> HierarchyDocument:
        ...

    async def fetch_screenshot(self) -> bytes:
        ...
