import pytest


@pytest.fixture
def anyio_backend():
    # The project is built on asyncio; don't parametrize over other
    # backends that happen to be installed in the environment.
    return "asyncio"
