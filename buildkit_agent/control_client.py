"""Client for the BuildKit Control API.

The agent only needs four read-only calls, so the remote side is modelled as
the small :class:`ControlClient` protocol. :class:`GrpcControlClient` speaks
gRPC to buildkitd, over its unix socket by default or over TCP.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any, Protocol, TypeVar

import grpc
from google.protobuf import json_format
from google.protobuf.message import Message
from pydantic import BaseModel, ValidationError

from . import control_proto as pb
from .schemas import (
    BuildHistoryEvent,
    DiskUsageResponse,
    InfoResponse,
    ListWorkersResponse,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class ControlAPIError(RuntimeError):
    """Raised when a Control API call fails or returns something unusable."""

    def __init__(self, method: str, message: str) -> None:
        super().__init__(f"{method}: {message}")
        self.method = method


class ControlClient(Protocol):
    """Read-only view of the BuildKit Control API."""

    async def info(self) -> InfoResponse: ...

    async def list_workers(self) -> ListWorkersResponse: ...

    async def disk_usage(self) -> DiskUsageResponse: ...

    def build_history(self, early_exit: bool = True) -> AsyncIterator[BuildHistoryEvent]: ...

    async def aclose(self) -> None: ...


def _rpc_error(method: str, exc: grpc.aio.AioRpcError) -> ControlAPIError:
    return ControlAPIError(method, f"{exc.code().name}: {exc.details()}")


def _to_model(message: Message, model: type[ModelT]) -> ModelT:
    return model.model_validate(json_format.MessageToDict(message, preserving_proto_field_name=True))


@dataclass(slots=True)
class GrpcControlClient:
    """ControlClient over a ``grpc.aio`` channel.

    The channel is opened on first use so it binds to the running event loop.
    Every call carries ``timeout`` as its deadline; for the history stream the
    deadline covers the whole bounded window.
    """

    target: str
    timeout: float = 10.0
    _channel: grpc.aio.Channel | None = field(init=False, default=None)

    async def info(self) -> InfoResponse:
        response = await self._unary("Info", pb.InfoRequest(), pb.InfoResponse)
        return self._convert("Info", response, InfoResponse)

    async def list_workers(self) -> ListWorkersResponse:
        response = await self._unary("ListWorkers", pb.ListWorkersRequest(), pb.ListWorkersResponse)
        return self._convert("ListWorkers", response, ListWorkersResponse)

    async def disk_usage(self) -> DiskUsageResponse:
        response = await self._unary("DiskUsage", pb.DiskUsageRequest(), pb.DiskUsageResponse)
        return self._convert("DiskUsage", response, DiskUsageResponse)

    async def build_history(self, early_exit: bool = True) -> AsyncIterator[BuildHistoryEvent]:
        """Stream history events; with ``early_exit`` the daemon closes once drained."""
        method = "ListenBuildHistory"
        listen = self._connect().unary_stream(
            f"{pb.SERVICE_PATH}/{method}",
            request_serializer=pb.BuildHistoryRequest.SerializeToString,
            response_deserializer=pb.BuildHistoryEvent.FromString,
        )
        call = listen(pb.BuildHistoryRequest(EarlyExit=early_exit), timeout=self.timeout)
        try:
            async for message in call:
                try:
                    yield _to_model(message, BuildHistoryEvent)
                except ValidationError as exc:
                    # One odd record must not hide the rest of the window.
                    logger.warning("Skipping unreadable build history event: %s", exc)
        except grpc.aio.AioRpcError as exc:
            raise _rpc_error(method, exc) from exc
        finally:
            call.cancel()

    async def aclose(self) -> None:
        if self._channel is not None:
            await self._channel.close()
            self._channel = None

    def _connect(self) -> grpc.aio.Channel:
        if self._channel is None:
            self._channel = grpc.aio.insecure_channel(self.target)
        return self._channel

    async def _unary(self, method: str, request: Message, response_type: Any) -> Message:
        call = self._connect().unary_unary(
            f"{pb.SERVICE_PATH}/{method}",
            request_serializer=type(request).SerializeToString,
            response_deserializer=response_type.FromString,
        )
        try:
            return await call(request, timeout=self.timeout)
        except grpc.aio.AioRpcError as exc:
            raise _rpc_error(method, exc) from exc

    @staticmethod
    def _convert(method: str, message: Message, model: type[ModelT]) -> ModelT:
        try:
            return _to_model(message, model)
        except ValidationError as exc:
            raise ControlAPIError(method, f"malformed response: {exc}") from exc


def resolve_target(addr: str) -> str:
    """Map a BuildKit address to a gRPC channel target."""
    if addr.startswith("tcp://"):
        target = addr.removeprefix("tcp://").rstrip("/")
        if not target:
            raise ValueError(f"Invalid BuildKit address '{addr}'")
        return target
    socket_path = addr.removeprefix("unix://")
    if not socket_path:
        raise ValueError(f"Invalid BuildKit address '{addr}'")
    if socket_path.startswith("/"):
        return f"unix://{socket_path}"
    return f"unix:{socket_path}"


def build_control_client(addr: str, timeout: float = 10.0) -> GrpcControlClient:
    return GrpcControlClient(target=resolve_target(addr), timeout=timeout)
