import pytest

from samples import Sample


@pytest.fixture
def example_payload():
    return [
        {"time": "2024-01-01T00:00:00Z", "stressed": False, "temp": 22.5, "hr": 70},
        {"time": "2024-01-01T00:00:05Z", "stressed": True, "temp": 23.1, "hr": 95},
    ]


@pytest.fixture
def example_samples(example_payload):
    return [Sample.from_json(item) for item in example_payload]
