import pytest

from fakes import FakeEncoder, FakeMotor, FakeTimer


@pytest.fixture
def timer():
    return FakeTimer()


@pytest.fixture
def motors():
    return FakeMotor(), FakeMotor()


@pytest.fixture
def encoders():
    return FakeEncoder(), FakeEncoder()
