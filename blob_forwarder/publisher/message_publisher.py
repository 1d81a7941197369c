"""
Message publisher for sending blob events to RabbitMQ.

This module provides functionality to publish enriched blob event messages
to RabbitMQ for consumption by downstream services.
"""

import time
from typing import Optional
from urllib.parse import quote

import aio_pika
from aio_pika.abc import (
    AbstractChannel,
    AbstractExchange,
    AbstractQueue,
    AbstractRobustConnection,
)
import structlog

from blob_forwarder.core.errors import PublishError
from blob_forwarder.schemas.event_grid import OutboundMessage
from blob_forwarder.utils.metrics import (
    RABBITMQ_MESSAGES_FAILED,
    RABBITMQ_MESSAGES_PUBLISHED,
    RABBITMQ_PUBLISH_TIME,
)

logger = structlog.get_logger(__name__)


class MessagePublisher:
    """Publisher for sending messages to RabbitMQ."""

    def __init__(
            self,
            host: str,
            port: int = 5672,
            username: str = "guest",
            password: str = "guest",
            queue: str = "blob-events",
            exchange: str = "",
            virtual_host: str = "/",
            connection_timeout: float = 5.0,
    ) -> None:
        """
        Initialize the message publisher.

        Args:
            host: RabbitMQ host
            port: RabbitMQ port
            username: RabbitMQ username
            password: RabbitMQ password
            queue: Queue name to publish to
            exchange: Exchange name (default is direct exchange)
            virtual_host: RabbitMQ virtual host
            connection_timeout: Connection timeout in seconds
        """
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.queue_name = queue
        self.exchange_name = exchange
        self.virtual_host = virtual_host
        self.connection_timeout = connection_timeout

        self.connection: Optional[AbstractRobustConnection] = None
        self.channel: Optional[AbstractChannel] = None
        self.queue: Optional[AbstractQueue] = None
        self.exchange: Optional[AbstractExchange] = None

    @property
    def is_connected(self) -> bool:
        return self.channel is not None and self.exchange is not None and not self.channel.is_closed

    async def connect(self) -> None:
        """
        Connect to RabbitMQ and set up the channel and queue.

        The channel is opened with publisher confirms so that every publish
        waits for the broker acknowledgment.

        Raises:
            ConnectionError: If connection fails
        """
        try:
            connection_string = (
                f"amqp://{quote(self.username, safe='')}:{quote(self.password, safe='')}"
                f"@{self.host}:{self.port}/{quote(self.virtual_host, safe='')}"
            )

            self.connection = await aio_pika.connect_robust(
                connection_string, timeout=self.connection_timeout
            )
            self.channel = await self.connection.channel(publisher_confirms=True)

            self.queue = await self.channel.declare_queue(
                self.queue_name, durable=True
            )

            if self.exchange_name:
                self.exchange = await self.channel.declare_exchange(
                    self.exchange_name, type=aio_pika.ExchangeType.TOPIC, durable=True
                )
                await self.queue.bind(self.exchange, routing_key=self.queue_name)
            else:
                self.exchange = self.channel.default_exchange

            logger.info(
                "Connected to RabbitMQ",
                host=self.host,
                port=self.port,
                queue=self.queue_name,
                exchange=self.exchange_name or "(default)",
            )

        except Exception as e:
            logger.error("Failed to connect to RabbitMQ", host=self.host, port=self.port, error=str(e))
            await self.close()
            raise ConnectionError(f"Failed to connect to RabbitMQ: {str(e)}") from e

    async def publish(self, message: OutboundMessage) -> None:
        """
        Publish a blob event message and wait for the broker to confirm it.

        Args:
            message: Outbound message to publish

        Raises:
            PublishError: If not connected, or the broker rejects or fails to
                acknowledge the message
        """
        if not self.is_connected:
            RABBITMQ_MESSAGES_FAILED.labels(queue=self.queue_name, label=message.label).inc()
            raise PublishError("Not connected to RabbitMQ. Call connect() first.")

        start_time = time.time()

        pika_message = aio_pika.Message(
            body=message.body,
            headers=dict(message.properties),
            content_type="application/json",
            content_encoding="utf-8",
            delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
            message_id=message.id,
            type=message.label,
        )

        try:
            await self.exchange.publish(pika_message, routing_key=self.queue_name)
        except Exception as e:
            RABBITMQ_MESSAGES_FAILED.labels(queue=self.queue_name, label=message.label).inc()
            logger.error(
                "Failed to publish message",
                message_id=message.id,
                label=message.label,
                queue=self.queue_name,
                error=str(e),
            )
            raise PublishError(f"Failed to publish message {message.id}: {str(e)}") from e

        duration = time.time() - start_time
        RABBITMQ_PUBLISH_TIME.labels(queue=self.queue_name).observe(duration)
        RABBITMQ_MESSAGES_PUBLISHED.labels(queue=self.queue_name, label=message.label).inc()

        logger.debug(
            "Published message",
            message_id=message.id,
            label=message.label,
            queue=self.queue_name,
            duration=round(duration, 3),
        )

    async def close(self) -> None:
        """
        Close the connection to RabbitMQ.

        This should be called when shutting down the service.
        """
        if self.connection:
            try:
                await self.connection.close()
                logger.info("Closed RabbitMQ connection")
            except Exception as e:
                logger.error("Error closing RabbitMQ connection", error=str(e))

        self.connection = None
        self.channel = None
        self.queue = None
        self.exchange = None
