"""Edge device telemetry gateway: sanitizes device batches before forwarding."""
