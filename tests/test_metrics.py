"""Test the metrics module."""

from unittest.mock import MagicMock, patch

from prometheus_client import generate_latest

from core.metrics import checkout_created, checkout_resolved, init_metrics


def test_checkout_created_counter():
    """Test checkout created counter increments."""
    initial_value = checkout_created._value._value
    checkout_created.inc()
    assert checkout_created._value._value == initial_value + 1


def test_checkout_resolved_counter_with_labels():
    """Test resolved counter keeps one series per outcome."""
    for outcome in ("captured", "failed", "no_pending"):
        metric = checkout_resolved.labels(outcome=outcome)
        initial_value = metric._value._value
        metric.inc()
        assert metric._value._value == initial_value + 1
        assert metric._labelvalues == (outcome,)


def test_init_metrics_with_app():
    """Test metrics initialization with FastAPI app."""
    mock_app = MagicMock()

    with patch("core.metrics.Instrumentator") as mock_instrumentator:
        mock_inst = MagicMock()
        mock_instrumentator.return_value = mock_inst
        mock_inst.instrument.return_value = mock_inst

        result = init_metrics(mock_app)

        mock_instrumentator.assert_called_once()
        mock_inst.instrument.assert_called_with(mock_app)
        mock_inst.expose.assert_called_with(
            mock_app, endpoint="/metrics", include_in_schema=False
        )
        assert result == mock_inst


def test_metrics_endpoint_integration(client):
    """Test that metrics endpoint is available and returns Prometheus format."""
    response = client.get("/metrics")

    assert response.status_code == 200
    assert "text/plain" in response.headers.get("content-type", "")

    content = response.text
    assert "paypal_checkout_created_total" in content
    assert "paypal_checkout_resolved_total" in content


def test_metrics_naming_convention():
    # prometheus_client strips the _total suffix from counter names
    assert checkout_created._name == "paypal_checkout_created"
    assert checkout_resolved._name == "paypal_checkout_resolved"


def test_metrics_export():
    result = generate_latest()
    assert isinstance(result, bytes)
    assert b"paypal_checkout_created_total" in result
