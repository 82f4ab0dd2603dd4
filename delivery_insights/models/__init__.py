from .anomaly import (
    AnomalySeverity,
    AnomalyType,
    BotActivityAnomaly,
    BotActivityDetails,
    CampaignAnomaly,
    CampaignAnomalyAdapter,
    ChangeDetails,
    ImpressionChangeAnomaly,
    TransactionDropAnomaly,
    ZeroStreakDetails,
    ZeroTransactionAnomaly,
)
from .records import ContractTerms, DeliveryRecord

__all__ = [
    "AnomalySeverity",
    "AnomalyType",
    "BotActivityAnomaly",
    "BotActivityDetails",
    "CampaignAnomaly",
    "CampaignAnomalyAdapter",
    "ChangeDetails",
    "ContractTerms",
    "DeliveryRecord",
    "ImpressionChangeAnomaly",
    "TransactionDropAnomaly",
    "ZeroStreakDetails",
    "ZeroTransactionAnomaly",
]
