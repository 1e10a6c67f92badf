"""Smoke-test options: which deployed provisioner API to hit, and with what names."""

import os

import httpx
import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--api-url",
        action="store",
        default=os.getenv("PROVISIONER_API_URL") or os.getenv("API_ENDPOINT"),
        help="Base URL of the deployed provisioner API",
    )
    parser.addoption(
        "--service-name",
        action="store",
        default=os.getenv("SMOKE_SERVICE_NAME", "smoke-test-does-not-exist"),
        help="A Fargate service name that is known not to be deployed",
    )


@pytest.fixture(scope="session")
def api_url(request) -> str:
    url = request.config.getoption("--api-url")
    if not url:
        pytest.skip("no provisioner API URL given (--api-url or PROVISIONER_API_URL)")
    return url.rstrip("/")


@pytest.fixture(scope="session")
def undeployed_service_name(request) -> str:
    return request.config.getoption("--service-name")


@pytest.fixture
def client(api_url):
    """HTTP client for the deployed API."""
    with httpx.Client(base_url=api_url, timeout=30.0) as http:
        yield http
