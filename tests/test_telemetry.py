"""
Unit tests for the telemetry client.
"""

import threading
import unittest
from unittest.mock import patch

from prometheus_client import CollectorRegistry

from blob_forwarder.telemetry.client import TelemetryClient, metric_identifier


class TestMetricIdentifier(unittest.TestCase):
    """Unit tests for metric_identifier."""

    def test_display_names(self):
        """Test conversion of display names into Prometheus identifiers."""
        self.assertEqual(metric_identifier("ProcessBlobEvents Created"), "process_blob_events_created")
        self.assertEqual(metric_identifier("ProcessBlobEvents Deleted"), "process_blob_events_deleted")
        self.assertEqual(metric_identifier("BlobType"), "blob_type")
        self.assertEqual(metric_identifier("ContentType "), "content_type")


class TestTelemetryClient(unittest.TestCase):
    """Unit tests for TelemetryClient."""

    def setUp(self):
        """Set up a client on an isolated registry."""
        self.registry = CollectorRegistry()
        self.client = TelemetryClient(registry=self.registry, environment="test")

    def test_track_metric(self):
        """Test that metrics accumulate per dimension set."""
        dimensions = {"BlobType": "BlockBlob", "ContentType": "text/plain"}

        self.client.track_metric("ProcessBlobEvents Created", 1, dimensions)
        self.client.track_metric("ProcessBlobEvents Created", 1, dimensions)
        self.client.track_metric(
            "ProcessBlobEvents Created", 1, {"BlobType": "PageBlob", "ContentType": ""}
        )

        self.assertEqual(
            self.registry.get_sample_value(
                "process_blob_events_created_total",
                {"blob_type": "BlockBlob", "content_type": "text/plain"},
            ),
            2.0,
        )
        self.assertEqual(
            self.registry.get_sample_value(
                "process_blob_events_created_total",
                {"blob_type": "PageBlob", "content_type": ""},
            ),
            1.0,
        )

    def test_track_event(self):
        """Test that events are counted per operation."""
        self.client.track_event("[https://acct/files/a.txt] blob created", "inv-1", "BlobCreatedEvent")

        self.assertEqual(
            self.registry.get_sample_value(
                "telemetry_events_total", {"operation": "BlobCreatedEvent"}
            ),
            1.0,
        )

    def test_concurrent_metrics(self):
        """Test that concurrent invocations share one metric family safely."""
        dimensions = {"BlobType": "BlockBlob", "ContentType": "text/plain"}

        def worker():
            for _ in range(50):
                self.client.track_metric("ProcessBlobEvents Deleted", 1, dimensions)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(
            self.registry.get_sample_value(
                "process_blob_events_deleted_total",
                {"blob_type": "BlockBlob", "content_type": "text/plain"},
            ),
            400.0,
        )

    def test_initialize_disabled(self):
        """Test that a disabled client installs no tracer provider."""
        self.client.initialize()

        self.assertIsNone(self.client.tracer_provider)
        self.client.shutdown()

    def test_shutdown_unregisters_metrics(self):
        """Test that a client created after shutdown can reuse the registry."""
        dimensions = {"BlobType": "BlockBlob", "ContentType": "text/plain"}
        self.client.track_metric("ProcessBlobEvents Created", 1, dimensions)
        self.client.track_event("[https://acct/files/a.txt] blob created", "inv-1", "BlobCreatedEvent")

        self.client.shutdown()

        self.assertIsNone(
            self.registry.get_sample_value(
                "process_blob_events_created_total",
                {"blob_type": "BlockBlob", "content_type": "text/plain"},
            )
        )

        restarted = TelemetryClient(registry=self.registry, environment="test")
        restarted.track_metric("ProcessBlobEvents Created", 1, dimensions)
        restarted.track_event("[https://acct/files/a.txt] blob created", "inv-2", "BlobCreatedEvent")

        self.assertEqual(
            self.registry.get_sample_value(
                "process_blob_events_created_total",
                {"blob_type": "BlockBlob", "content_type": "text/plain"},
            ),
            1.0,
        )
        self.assertEqual(
            self.registry.get_sample_value(
                "telemetry_events_total", {"operation": "BlobCreatedEvent"}
            ),
            1.0,
        )

        # Second shutdown has nothing left to unregister
        self.client.shutdown()
        restarted.shutdown()

    @patch("blob_forwarder.telemetry.client.trace.set_tracer_provider")
    def test_initialize_and_shutdown(self, mock_set_provider):
        """Test the tracer provider lifecycle."""
        client = TelemetryClient(
            registry=CollectorRegistry(),
            environment="test",
            instrumentation_key="key-1",
            enabled=True,
        )

        client.initialize()
        provider = client.tracer_provider

        self.assertIsNotNone(provider)
        mock_set_provider.assert_called_once_with(provider)
        self.assertEqual(provider.resource.attributes["telemetry.key"], "key-1")

        # Second call is a no-op
        client.initialize()
        mock_set_provider.assert_called_once()

        client.shutdown()
        self.assertIsNone(client.tracer_provider)


if __name__ == "__main__":
    unittest.main()
