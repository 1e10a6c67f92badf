"""Pytest configuration and fixtures.

This module sets up test environment variables BEFORE any application
modules are imported, ensuring Settings pick up test values (in-memory state
store, zero wait intervals) in CI.
"""

import os

# Set test environment variables before any imports that might trigger Settings
# This runs at pytest collection time, before test modules are imported
os.environ.setdefault("APP_NAME", "fargate-provisioner-test")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("AWS_REGION", "us-east-1")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ.setdefault("STATE_STORE", "provisioner.state.MemoryStateStore")
os.environ.setdefault("DEPLOY_SETTLE_SECONDS", "0")
os.environ.setdefault("REFRESH_SETTLE_SECONDS", "0")
os.environ.setdefault("TASK_POLL_INTERVAL_SECONDS", "0")
os.environ.setdefault("AWS_XRAY_CONTEXT_MISSING", "LOG_ERROR")

import pytest

from common.config import Settings


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with no waiting between polls."""
    return Settings(
        _env_file=None,
        state_store="provisioner.state.MemoryStateStore",
        deploy_settle_seconds=0,
        refresh_settle_seconds=0,
        task_poll_interval_seconds=0,
        deploy_max_attempts=10,
        remove_max_attempts=5,
    )


@pytest.fixture
def mock_env_vars():
    """Fixture providing standard test environment variables."""
    return {
        "APP_NAME": "fargate-provisioner-test",
        "DEBUG": "false",
        "ENVIRONMENT": "testing",
        "AWS_REGION": "us-east-1",
        "STATE_STORE": "provisioner.state.MemoryStateStore",
    }
