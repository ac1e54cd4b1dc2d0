"""
IB Gateway connection handling for the option chain feed.

- CircuitBreaker: stops hammering IB after repeated request failures and
  lets a single probe through once the cooldown has elapsed
- IBConnectionManager: owns the ib_async IB instance, connects with
  exponential backoff and reconnects on demand before each chain request
"""

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional

from ib_async import IB
from loguru import logger

if TYPE_CHECKING:
    from optrader.config.trader_config import IBConnectionConfig


class CircuitState(Enum):
    CLOSED = "closed"        # Requests flow
    OPEN = "open"            # Requests rejected until cooldown elapses
    HALF_OPEN = "half_open"  # One probe allowed


@dataclass
class CircuitBreaker:
    """
    Failure counter shared by every request of one connection.

    Attributes:
        failure_threshold: Consecutive failures that open the circuit
        cooldown: Seconds the circuit stays open before a probe
        clock: Monotonic time source (seconds)
    """
    failure_threshold: int = 5
    cooldown: float = 60.0
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)
    state: CircuitState = CircuitState.CLOSED
    failure_count: int = 0
    opened_at: Optional[float] = None

    def record_failure(self) -> None:
        self.failure_count += 1
        if self.state == CircuitState.HALF_OPEN or self.failure_count >= self.failure_threshold:
            if self.state != CircuitState.OPEN:
                logger.warning(f"Circuit breaker OPEN after {self.failure_count} failures")
            self.state = CircuitState.OPEN
            self.opened_at = self.clock()

    def record_success(self) -> None:
        if self.state != CircuitState.CLOSED:
            logger.info("Circuit breaker CLOSED, IB requests recovered")
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.opened_at = None

    def can_attempt(self) -> bool:
        """True if a request may be sent now."""
        if self.state == CircuitState.OPEN:
            if self.clock() - self.opened_at < self.cooldown:
                return False
            self.state = CircuitState.HALF_OPEN
            logger.info("Circuit breaker HALF_OPEN, probing IB")
        return True


class IBConnectionManager:
    """
    Connection to IB Gateway / TWS with retry and reconnect.

    Usage:
        async with IBConnectionManager(port=4002) as conn:
            feed = IBOptionChainFeed(conn)
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 4002,
        client_id: int = 1,
        max_retries: int = 3,
        retry_delay: float = 2.0,
        connect_timeout: int = 10,
        failure_threshold: int = 5,
        circuit_cooldown: float = 60.0,
        ib: Optional[IB] = None,
    ):
        """
        Initialize the connection manager.

        Args:
            host: Gateway host
            port: Gateway port (4002 paper gateway, 4001 live gateway)
            client_id: API client id
            max_retries: Connection attempts before giving up
            retry_delay: Backoff base in seconds (waits delay**1, delay**2, ...)
            connect_timeout: Seconds allowed per connection attempt
            failure_threshold: Request failures that open the circuit breaker
            circuit_cooldown: Seconds before an open circuit is probed
            ib: IB instance (a new one by default)
        """
        self.host = host
        self.port = port
        self.client_id = client_id
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.connect_timeout = connect_timeout
        self.ib = ib or IB()
        self.circuit_breaker = CircuitBreaker(failure_threshold, circuit_cooldown)
        self._is_connected = False

    @classmethod
    def from_config(cls, config: "IBConnectionConfig") -> "IBConnectionManager":
        """Create a connection manager from the ib_connection config section."""
        return cls(
            host=config.host,
            port=config.port,
            client_id=config.client_id,
            max_retries=config.max_retries,
            retry_delay=config.retry_delay,
            connect_timeout=config.connect_timeout,
            failure_threshold=config.failure_threshold,
            circuit_cooldown=config.circuit_cooldown,
        )

    async def connect(self) -> None:
        """
        Connect, retrying refused or timed out attempts with exponential backoff.

        Raises:
            TimeoutError, ConnectionRefusedError: After the last failed attempt
        """
        for attempt in range(1, self.max_retries + 1):
            try:
                await self.ib.connectAsync(
                    host=self.host,
                    port=self.port,
                    clientId=self.client_id,
                    timeout=self.connect_timeout
                )
            except (TimeoutError, ConnectionRefusedError) as e:
                if attempt == self.max_retries:
                    logger.error(f"Failed to connect to {self.host}:{self.port} after {attempt} attempts")
                    raise
                wait_time = self.retry_delay ** attempt
                logger.warning(
                    f"Connection to {self.host}:{self.port} failed ({type(e).__name__}), "
                    f"retrying in {wait_time}s (attempt {attempt}/{self.max_retries})"
                )
                await asyncio.sleep(wait_time)
            else:
                self._is_connected = True
                logger.info(f"✓ Connected to IB at {self.host}:{self.port} (client {self.client_id})")
                return

    def disconnect(self) -> None:
        if self._is_connected:
            self.ib.disconnect()
            self._is_connected = False
            logger.info("✓ Disconnected from IB")

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()

    @property
    def is_connected(self) -> bool:
        return self._is_connected and self.ib.isConnected()

    async def ensure_connected(self) -> None:
        """Reconnect if the gateway dropped the connection."""
        if not self.is_connected:
            logger.warning("IB connection lost, reconnecting...")
            await self.connect()
