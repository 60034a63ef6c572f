"""
Supervision of the local broker process that relays the TikTok LIVE feed.
"""

import asyncio
from typing import List, Optional

from loguru import logger

from ..errors import BrokerError


class BrokerProcess:
    """
    Launches the broker when nothing is listening on its port, and kills and
    relaunches it when it stops answering.
    """

    def __init__(
        self,
        command: Optional[List[str]],
        host: str = "127.0.0.1",
        port: int = 21213,
        working_dir: Optional[str] = None,
        startup_delay: float = 2.0,
    ):
        """
        Args:
            command: Executable and arguments; None means an externally managed broker
            host: Address the broker listens on
            port: Port the broker listens on
            working_dir: Working directory for the broker process
            startup_delay: Time given to a freshly launched broker before connecting
        """
        self.command = command
        self.host = host
        self.port = port
        self.working_dir = working_dir
        self.startup_delay = startup_delay
        self.process: Optional[asyncio.subprocess.Process] = None
        self._output_task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self.process is not None and self.process.returncode is None

    async def is_reachable(self, timeout: float = 1.0) -> bool:
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port), timeout=timeout
            )
        except (OSError, asyncio.TimeoutError):
            return False
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass
        return True

    async def ensure_running(self) -> None:
        """
        Make sure a broker is listening, launching one if needed.

        Raises:
            BrokerError: If no broker is reachable and none can be launched
        """
        if self.is_running or await self.is_reachable():
            return
        await self.launch()

    async def launch(self) -> None:
        if not self.command:
            raise BrokerError(
                f"Broker is not listening on {self.host}:{self.port} and no command is configured"
            )

        logger.info(f"[TikTok] Launching broker: {' '.join(self.command)}")
        try:
            self.process = await asyncio.create_subprocess_exec(
                *self.command,
                cwd=self.working_dir,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as e:
            raise BrokerError(f"Failed to launch broker: {e}") from e

        self._output_task = asyncio.create_task(self._pump_output(self.process))
        await asyncio.sleep(self.startup_delay)

        if self.process.returncode is not None:
            code = self.process.returncode
            self.process = None
            raise BrokerError(f"Broker exited during startup with code {code}")
        logger.info(f"[TikTok] Broker started (pid {self.process.pid})")

    async def _pump_output(self, process: asyncio.subprocess.Process) -> None:
        if process.stdout is None:
            return
        while True:
            line = await process.stdout.readline()
            if not line:
                break
            logger.debug(f"[TikTok] broker: {line.decode(errors='replace').rstrip()}")

    async def terminate(self, timeout: float = 3.0) -> None:
        """Kill the broker process if this object launched it."""
        process = self.process
        self.process = None
        if process is None or process.returncode is not None:
            return
        logger.info(f"[TikTok] Stopping broker (pid {process.pid})")
        process.kill()
        try:
            await asyncio.wait_for(process.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[TikTok] Broker (pid {process.pid}) did not exit in {timeout}s")
        if self._output_task is not None:
            self._output_task.cancel()
            self._output_task = None

    async def restart(self) -> None:
        """Kill and relaunch, for a broker suspected to have crashed or hung."""
        await self.terminate()
        await self.launch()
