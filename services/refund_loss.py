"""
Refund Loss Model
İade kaybı = brüt iade * (1 - geri kazanım oranı)
"""
from typing import Mapping, Optional

from app.core.enums import RefundRecovery


def refund_loss(gross_refund: float, recovery_rate: float) -> float:
    """Örn: 100 iade, %30 geri kazanım -> 70 kayıp"""
    return gross_refund * (1 - recovery_rate)


def recovery_rate_for(
    marketplace: Optional[str],
    configured: Optional[Mapping[str, float]] = None,
    default: float = RefundRecovery.DEFAULT_RATE,
) -> float:
    """
    Geri kazanım oranı: kullanıcı ayarı > pazar varsayılanı > sabit varsayılan
    """
    if marketplace and configured:
        rate = configured.get(marketplace.upper())
        if rate is not None:
            return rate
    return RefundRecovery.get_rate(marketplace, default=default)
