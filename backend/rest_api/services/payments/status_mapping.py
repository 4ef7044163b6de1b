"""
Mercado Pago status vocabulary to internal PaymentStatus.
"""

from shared.config.constants import GatewayStatus, PaymentStatus

GATEWAY_STATUS_MAP: dict[str, PaymentStatus] = {
    GatewayStatus.APPROVED: PaymentStatus.COMPLETED,
    GatewayStatus.AUTHORIZED: PaymentStatus.APPROVED,
    GatewayStatus.IN_PROCESS: PaymentStatus.PENDING,
    GatewayStatus.IN_MEDIATION: PaymentStatus.PENDING,
    GatewayStatus.REJECTED: PaymentStatus.REJECTED,
    GatewayStatus.CANCELLED: PaymentStatus.REJECTED,
    GatewayStatus.REFUNDED: PaymentStatus.REJECTED,
    GatewayStatus.CHARGED_BACK: PaymentStatus.REJECTED,
}


def map_gateway_status(gateway_status: str | None) -> PaymentStatus:
    """
    Translate a gateway status into the internal enum.

    Total function: unknown or missing values map to PENDING so a later
    reconciliation can pick the payment up again.
    """
    if not gateway_status:
        return PaymentStatus.PENDING
    return GATEWAY_STATUS_MAP.get(gateway_status, PaymentStatus.PENDING)
