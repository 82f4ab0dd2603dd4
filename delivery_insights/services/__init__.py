from .analytics_service import AnalyticsOutput, CampaignAnalyticsService

__all__ = ["AnalyticsOutput", "CampaignAnalyticsService"]
