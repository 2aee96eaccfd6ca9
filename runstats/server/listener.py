"""Line-oriented query server for stats snapshots.

Clients send one command per line and read the response up to the blank
line that terminates it. A connection stays usable after an unknown command.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import Callable

from runstats.lib.logger import get_logger
from runstats.stats.host import HostStats
from runstats.stats.registry import StatsRegistry
from runstats.stats.render import stats_json, stats_text

logger = get_logger(__name__)

QUIT = "quit"

CommandHandler = Callable[[str], str]


class StatsCommandHandler:
    """Map protocol commands onto registry renderings.

    ``stats`` / ``stats text`` and ``stats json`` are recognised; appending
    ``reset`` makes the read a resetting one.
    """

    def __init__(self, registry: StatsRegistry, host_stats: HostStats | None = None) -> None:
        self._registry = registry
        self._host_stats = host_stats

    def __call__(self, command: str) -> str:
        words = command.split()
        reset = len(words) > 1 and words[-1] == "reset"
        if reset:
            words = words[:-1]

        if words in (["stats"], ["stats", "text"]):
            return stats_text(self._registry, reset, self._host_stats)
        if words == ["stats", "json"]:
            return stats_json(self._registry, reset, self._host_stats)
        return f"error unknown command: {command}"


def frame(body: str) -> bytes:
    """Terminate a response body with a newline and a blank line."""

    text = body if body.endswith("\n") or not body else body + "\n"
    return (text + "\n").encode("utf-8")


class StatsSocketServer:
    """Serve ``handler`` responses over TCP with asyncio streams."""

    def __init__(
        self,
        handler: CommandHandler,
        host: str = "127.0.0.1",
        port: int = 4321,
        line_limit: int = 2**16,
    ) -> None:
        self._handler = handler
        self.host = host
        self._requested_port = port
        self._line_limit = line_limit
        self._server: asyncio.Server | None = None

    @property
    def port(self) -> int:
        """Bound port (useful when started on port 0)."""

        if self._server is None or not self._server.sockets:
            return self._requested_port
        return self._server.sockets[0].getsockname()[1]

    async def start(self) -> None:
        if self._server is not None:
            return
        self._server = await asyncio.start_server(
            self._handle_client, self.host, self._requested_port, limit=self._line_limit
        )
        logger.info("stats.socket.started", extra={"host": self.host, "port": self.port})

    async def stop(self) -> None:
        if self._server is None:
            return
        server, self._server = self._server, None
        server.close()
        await server.wait_closed()
        logger.info("stats.socket.stopped")

    async def serve_forever(self) -> None:
        await self.start()
        assert self._server is not None
        await self._server.serve_forever()

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        peer = writer.get_extra_info("peername")
        try:
            while True:
                try:
                    raw = await reader.readline()
                except ValueError:
                    # over the stream limit; readline has already discarded the line
                    logger.warning("stats.socket.line.too_long", extra={"peer": str(peer)})
                    writer.write(frame("error line too long"))
                    await writer.drain()
                    continue
                if not raw:
                    break
                command = raw.decode("utf-8", errors="replace").strip()
                if not command:
                    continue
                if command == QUIT:
                    break
                try:
                    response = await asyncio.to_thread(self._handler, command)
                except Exception as exc:
                    logger.exception("stats.socket.command.failed", extra={"command": command})
                    response = f"error {type(exc).__name__}: {exc}"
                writer.write(frame(response))
                await writer.drain()
        except (ConnectionResetError, BrokenPipeError):
            logger.info("stats.socket.client.reset", extra={"peer": str(peer)})
        finally:
            writer.close()
            with contextlib.suppress(ConnectionResetError, BrokenPipeError):
                await writer.wait_closed()
