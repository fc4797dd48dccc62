import pytest

from binfloat import Context


@pytest.fixture
def context():
    with Context() as context:
        yield context
