import pytest

from subscription_core.domain.models import GatewayStatus


@pytest.mark.parametrize(
    "code, expected",
    [
        ("ActiveProfile", GatewayStatus.COMPLETE),
        ("PendingProfile", GatewayStatus.PENDING),
        ("Active", GatewayStatus.COMPLETE),
        ("Pending", GatewayStatus.PENDING),
        ("Cancelled", GatewayStatus.INVALID),
        ("Suspended", GatewayStatus.INVALID),
        (None, GatewayStatus.INVALID),
    ],
)
def test_from_gateway(code, expected):
    assert GatewayStatus.from_gateway(code) is expected
