"""Tests for GET /health and app startup."""

from realitycheck.detection.model_backend import FeatureModelBackend
from realitycheck.detection.pipeline import DetectionPipeline


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_lifespan_builds_pipeline_with_backend(client):
    pipeline = client.app.state.pipeline
    assert isinstance(pipeline, DetectionPipeline)
    assert isinstance(pipeline.backend, FeatureModelBackend)
