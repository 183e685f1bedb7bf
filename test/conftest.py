from __future__ import annotations

import typing

import pytest

from curlhttp import HTTPClient, TransferHandle

from . import FakeCurlFactory


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests only",
    )


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    integration_mode = bool(config.getoption("--integration"))
    skip_integration = pytest.mark.skip(
        reason="skipping, need --integration option to run"
    )
    skip_normal = pytest.mark.skip(
        reason="skipping non integration tests in --integration mode"
    )
    for item in items:
        if "integration" in item.keywords and not integration_mode:
            item.add_marker(skip_integration)
        elif integration_mode and "integration" not in item.keywords:
            item.add_marker(skip_normal)


@pytest.fixture()
def curl_factory() -> FakeCurlFactory:
    return FakeCurlFactory()


@pytest.fixture()
def handle(
    curl_factory: FakeCurlFactory,
) -> typing.Generator[TransferHandle, None, None]:
    with TransferHandle(curl_factory=curl_factory) as handle:
        yield handle


@pytest.fixture()
def client(curl_factory: FakeCurlFactory) -> HTTPClient:
    return HTTPClient(curl_factory=curl_factory)
