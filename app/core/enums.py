"""
Core Enums - Pazar yeri, kargo ve fulfillment sabitleri
"""
from enum import Enum
from typing import Optional


class Currency(str, Enum):
    """Desteklenen para birimleri"""
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    CAD = "CAD"
    AUD = "AUD"
    AED = "AED"
    SAR = "SAR"
    TRY = "TRY"

    @classmethod
    def is_valid(cls, code: str) -> bool:
        if not code:
            return False
        return code.upper() in cls._value2member_map_


class Marketplace(str, Enum):
    """
    Amazon pazar yerleri
    Transaction kayıtlarındaki marketplace_code alanı ile eşleşir
    """
    US = "US"
    UK = "UK"
    DE = "DE"
    FR = "FR"
    IT = "IT"
    ES = "ES"
    CA = "CA"
    AU = "AU"
    AE = "AE"
    SA = "SA"

    @classmethod
    def get_all_values(cls):
        """Tüm marketplace kodlarını liste olarak döner"""
        return [m.value for m in cls]

    @classmethod
    def is_valid(cls, marketplace: str) -> bool:
        """Verilen marketplace geçerli mi kontrol eder"""
        if not marketplace:
            return False
        return marketplace.upper() in cls._value2member_map_

    @classmethod
    def normalize(cls, marketplace: Optional[str]) -> Optional[str]:
        """Marketplace kodunu standartlaştırır ('all' ve boş değer = None)"""
        if not marketplace:
            return None

        marketplace_upper = marketplace.strip().upper()
        if marketplace_upper in ("ALL", "TÜMÜ", "TUMU"):
            return None

        mapping = {
            "GB": cls.UK.value,
            "UAE": cls.AE.value,
            "USA": cls.US.value,
        }
        return mapping.get(marketplace_upper, marketplace_upper)


class MarketplaceCurrency:
    """Pazar yeri -> yerel para birimi eşleşmesi"""
    CURRENCIES = {
        "US": Currency.USD,
        "UK": Currency.GBP,
        "DE": Currency.EUR,
        "FR": Currency.EUR,
        "IT": Currency.EUR,
        "ES": Currency.EUR,
        "CA": Currency.CAD,
        "AU": Currency.AUD,
        "AE": Currency.AED,
        "SA": Currency.SAR,
    }

    @classmethod
    def get(cls, marketplace: Optional[str]) -> Currency:
        """
        Marketplace için para birimini döner

        Returns:
            Currency - Bilinmeyen marketplace için USD
        """
        if not marketplace:
            return Currency.USD
        return cls.CURRENCIES.get(marketplace.upper(), Currency.USD)


class RefundRecovery:
    """
    İade geri kazanım oranları (0-1)

    0.30 = iade tutarının %30'u ücret iadesi ile geri alınır, %70'i kayıp
    """
    DEFAULT_RATE = 0.30

    RECOVERY_RATES = {
        "US": 0.50,
        "UK": 0.30,
        "DE": 0.30,
        "FR": 0.30,
        "IT": 0.30,
        "ES": 0.30,
        "CA": 0.40,
        "AU": 0.40,
        "AE": 0.30,
        "SA": 0.30,
    }

    @classmethod
    def get_rate(cls, marketplace: Optional[str], default: Optional[float] = None) -> float:
        """
        Marketplace için varsayılan geri kazanım oranını döner

        Args:
            marketplace: Marketplace kodu (None = tüm pazarlar)
            default: Bulunamazsa kullanılacak oran

        Returns:
            Geri kazanım oranı - Bulunamazsa default (yoksa 0.30)
        """
        fallback = cls.DEFAULT_RATE if default is None else default
        if not marketplace:
            return fallback
        return cls.RECOVERY_RATES.get(marketplace.upper(), fallback)


class Fulfillment(str, Enum):
    """SKU bazlı fulfillment sınıflandırması"""
    FBA = "FBA"
    FBM = "FBM"
    MIXED = "Mixed"

    @classmethod
    def is_fba_channel(cls, raw: Optional[str]) -> bool:
        """Transaction fulfillment alanı FBA mı? (Amazon raporlarında AFN de FBA demek)"""
        return (raw or "").upper() in ("FBA", "AFN")

    @classmethod
    def is_fbm_channel(cls, raw: Optional[str]) -> bool:
        return (raw or "").upper() in ("FBM", "MFN")

    @classmethod
    def classify(cls, raw_values) -> "Fulfillment":
        """
        Transaction kanallarından SKU fulfillment'ı

        - FBA/AFN görüldüyse FBA
        - Hem FBA hem FBM/MFN görüldüyse Mixed (veri kalitesi sinyali)
        - Diğer her şey FBM
        """
        values = list(raw_values)
        has_fba = any(cls.is_fba_channel(v) for v in values)
        has_fbm = any(cls.is_fbm_channel(v) for v in values)
        if has_fba and has_fbm:
            return cls.MIXED
        if has_fba:
            return cls.FBA
        return cls.FBM

    @property
    def touches_fba(self) -> bool:
        return self in (Fulfillment.FBA, Fulfillment.MIXED)

    @property
    def touches_fbm(self) -> bool:
        return self in (Fulfillment.FBM, Fulfillment.MIXED)


class FBMShippingMode(str, Enum):
    """
    FBM gönderim kaynağı

    - TR: Türkiye'den müşteriye direkt (gümrük + DDP)
    - LOCAL: Yerel depodan (gemi bedeli + yurt içi kargo)
    - BOTH: İkisinin ortalaması
    """
    TR = "TR"
    LOCAL = "LOCAL"
    BOTH = "BOTH"

    @classmethod
    def normalize(cls, value: Optional[str]) -> Optional["FBMShippingMode"]:
        """SKU bazlı 'US' kaynak değeri LOCAL anlamına gelir"""
        if value is None:
            return None
        if isinstance(value, FBMShippingMode):
            return value
        value_upper = str(value).strip().upper()
        if not value_upper:
            return None
        if value_upper == "US":
            return cls.LOCAL
        return cls(value_upper)


class ShippingRoute(str, Enum):
    """Kargo cetveli rotaları"""
    US_US = "US-US"   # US içi gönderim
    US_TR = "US-TR"   # TR'den US'e
    UK = "UK"
    CA = "CA"
    EU = "EU"         # DE, FR, IT, ES
    AU = "AU"
    UAE = "UAE"
    TR = "TR"         # Türkiye içi
    SG = "SG"
    SA = "SA"


class GSTApplyTo(str, Enum):
    """GST hangi fulfillment türüne uygulanır"""
    FBA = "FBA"
    FBM = "FBM"
    BOTH = "BOTH"


class IncompleteReason(str, Enum):
    """SKU neden marj/ROI hesabından hariç tutuldu"""
    MISSING_COST = "missing_cost"
    MISSING_SIZE = "missing_size"
    SHIPPING_RATE_NOT_FOUND = "shipping_rate_not_found"


class TransactionCategory:
    """
    Amazon transaction 'type' kategorileri

    Sipariş/iade dışındaki kategoriler global maliyet yüzdelerinde kullanılır
    """
    ORDER = "Order"
    REFUND = "Refund"
    SERVICE_FEE = "Service Fee"

    # FBA maliyet kalemleri (reklam hariç)
    FBA_COST_CATEGORIES = frozenset({
        "Adjustment",
        "FBA Inventory Fee",
        "Chargeback Refund",
        "FBA Transaction Fee",
        "Fee Adjustment",
        "SAFE-T Reimbursement",
        "Liquidations",
    })

    # FBM kargo hizmetleri (dil bazlı)
    SHIPPING_SERVICE_CATEGORIES = frozenset({
        "Shipping Services",       # US, CA
        "Delivery Services",       # UK
        "Lieferdienste",           # DE
        "Services de livraison",   # FR
        "Servizi di consegna",     # IT
        "Servicios de entrega",    # ES
    })

    # Reklam açıklamaları (dil bazlı, küçük harf)
    ADVERTISING_KEYWORDS = (
        "cost of advertising",     # EN
        "werbekosten",             # DE
        "prix de la publicité",    # FR
        "pubblicità",              # IT
        "gastos de publicidad",    # ES
    )

    @classmethod
    def is_advertising(cls, description: Optional[str]) -> bool:
        if not description:
            return False
        desc = description.lower()
        return any(keyword in desc for keyword in cls.ADVERTISING_KEYWORDS)


GRADE_AND_RESELL_PREFIXES = ("AMZN.GR", "AMZN,GR")
GRADE_AND_RESELL_CATEGORY = "Grade and Resell"
UNCATEGORIZED = "Uncategorized"


def is_grade_and_resell(sku: Optional[str]) -> bool:
    """Amazon Grade & Resell SKU'su mu?"""
    return bool(sku) and sku.upper().startswith(GRADE_AND_RESELL_PREFIXES)
