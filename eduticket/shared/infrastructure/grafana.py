"""
Grafana OTLP Metrics Exporter
==============================

Pushes LLM usage metrics (tokens, latency) and request latency to Grafana
Cloud via OTLP.

Metrics exported:
- llm_tokens_total: Total tokens used (prompt + completion)
- llm_prompt_tokens / llm_completion_tokens
- llm_latency_ms: LLM request latency in milliseconds
- http_request_latency_ms: API request latency in milliseconds
"""

import base64
import time
from typing import Optional, Dict, Any, List

import httpx

from eduticket.config import settings
from eduticket.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


def _attributes(values: Dict[str, Any]) -> List[dict]:
    """Convert a flat dict into OTLP string attributes."""
    return [
        {"key": key, "value": {"stringValue": str(value)}}
        for key, value in values.items()
    ]


def _gauge(name: str, unit: str, description: str, value: int,
           timestamp_ns: int, attributes: List[dict]) -> dict:
    """Build a single-point OTLP gauge metric."""
    return {
        "name": name,
        "unit": unit,
        "description": description,
        "gauge": {
            "dataPoints": [
                {
                    "asInt": value,
                    "timeUnixNano": timestamp_ns,
                    "attributes": attributes
                }
            ]
        }
    }


class GrafanaOTLPExporter:
    """
    Export metrics to Grafana Cloud via OTLP HTTP endpoint.

    Uses OpenTelemetry Protocol (OTLP) JSON format for metrics.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        api_key: Optional[str] = None,
        instance_id: Optional[str] = None
    ):
        """
        Initialize Grafana OTLP exporter.

        Args:
            host: Grafana OTLP gateway URL
            api_key: Grafana API key
            instance_id: Instance ID for authentication
        """
        self._host = host or settings.grafana_host
        self._api_key = api_key or settings.grafana_api_key
        self._instance_id = instance_id or settings.grafana_instance_id
        self._enabled = bool(self._host and self._api_key and self._instance_id)

        if self._enabled:
            auth_pair = f"{self._instance_id}:{self._api_key}"
            self._auth_encoded = base64.b64encode(auth_pair.encode()).decode()
            # Don't double-append the path if host already includes it
            if "/otlp/v1/metrics" not in self._host:
                self._url = f"{self._host.rstrip('/')}/otlp/v1/metrics"
            else:
                self._url = self._host
            logger.info(
                "Grafana OTLP exporter initialized",
                extra={"host": self._host, "instance_id": self._instance_id}
            )
        else:
            logger.debug("Grafana OTLP exporter not configured - metrics will not be exported")

    def is_enabled(self) -> bool:
        """Check if exporter is properly configured."""
        return self._enabled

    def _payload(self, metrics: List[dict]) -> dict:
        return {
            "resourceMetrics": [
                {
                    "resource": {
                        "attributes": _attributes({
                            "service.name": settings.app_name,
                            "service.version": settings.app_version,
                            "deployment.environment": settings.environment,
                        })
                    },
                    "scopeMetrics": [{"metrics": metrics}]
                }
            ]
        }

    async def _send(self, payload: dict, description: str) -> bool:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Basic {self._auth_encoded}",
        }

        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.post(self._url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            logger.error(
                f"Error exporting {description} to Grafana",
                extra={"error": str(e)}
            )
            return False

        if response.status_code in (200, 202):
            return True

        logger.warning(
            f"Failed to export {description} to Grafana",
            extra={
                "status_code": response.status_code,
                "response": response.text[:500],
                "url": self._url
            }
        )
        return False

    async def export_llm_metrics(
        self,
        model: str,
        prompt_tokens: int,
        completion_tokens: int,
        latency_ms: int,
        operation: str = "chat_completion",
        attributes: Optional[Dict[str, str]] = None
    ) -> bool:
        """
        Export LLM usage metrics to Grafana.

        Args:
            model: LLM model name (e.g., "gemini-2.0-flash-exp")
            prompt_tokens: Number of prompt tokens used
            completion_tokens: Number of completion tokens generated
            latency_ms: Request latency in milliseconds
            operation: Operation type (triage, rag, answer_synthesis)
            attributes: Additional attributes to attach to metrics

        Returns:
            True if export succeeded, False otherwise
        """
        if not self._enabled:
            return False

        timestamp_ns = int(time.time() * 1_000_000_000)
        attrs = _attributes({
            "model": model,
            "operation": operation,
            "service": settings.app_name,
            **(attributes or {}),
        })

        payload = self._payload([
            _gauge("llm_tokens_total", "1", "Total tokens used in LLM requests",
                   prompt_tokens + completion_tokens, timestamp_ns, attrs),
            _gauge("llm_latency_ms", "ms", "LLM request latency in milliseconds",
                   latency_ms, timestamp_ns, attrs),
            _gauge("llm_prompt_tokens", "1", "Number of prompt tokens in LLM requests",
                   prompt_tokens, timestamp_ns, attrs),
            _gauge("llm_completion_tokens", "1", "Number of completion tokens generated",
                   completion_tokens, timestamp_ns, attrs),
        ])

        return await self._send(payload, "LLM metrics")

    async def export_request_latency(
        self,
        endpoint: str,
        status_code: int,
        latency_ms: int,
        method: str = "POST"
    ) -> bool:
        """
        Export HTTP request latency metrics.

        Returns:
            True if export succeeded
        """
        if not self._enabled:
            return False

        timestamp_ns = int(time.time() * 1_000_000_000)
        attrs = _attributes({
            "endpoint": endpoint,
            "method": method,
            "status_code": status_code,
            "service": settings.app_name,
        })

        payload = self._payload([
            _gauge("http_request_latency_ms", "ms", "API request latency in milliseconds",
                   latency_ms, timestamp_ns, attrs),
        ])

        return await self._send(payload, "request latency")


# Global exporter instance
_grafana_exporter: Optional[GrafanaOTLPExporter] = None


def get_grafana_exporter() -> Optional[GrafanaOTLPExporter]:
    """Get or create global Grafana exporter instance."""
    global _grafana_exporter
    if _grafana_exporter is None:
        _grafana_exporter = GrafanaOTLPExporter()
    return _grafana_exporter


def init_grafana_exporter(
    host: str,
    api_key: str,
    instance_id: str
) -> GrafanaOTLPExporter:
    """Initialize Grafana exporter with credentials."""
    global _grafana_exporter
    _grafana_exporter = GrafanaOTLPExporter(
        host=host,
        api_key=api_key,
        instance_id=instance_id
    )
    return _grafana_exporter
