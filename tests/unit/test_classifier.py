import pytest

from freight_analytics.analytics.classifier import classify_mode
from freight_analytics.domain.models import TransportMode


@pytest.mark.parametrize(
    "text, expected",
    [
        ("40 - Air", TransportMode.AIR),
        ("  40 - AIR ", TransportMode.AIR),
        ("10 - Vessel", TransportMode.SEA),
        ("11 - Vessel, Containerized", TransportMode.SEA),
        ("30 - Truck", TransportMode.TRUCK),
        ("20 - Rail", TransportMode.OTHER),
        ("Air", TransportMode.OTHER),
        ("", TransportMode.OTHER),
        (None, TransportMode.OTHER),
    ],
)
def test_classify_mode(text, expected):
    assert classify_mode(text) is expected
