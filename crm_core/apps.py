# crm_core/apps.py

from django.apps import AppConfig
from django.conf import settings
import logging

logger = logging.getLogger(__name__)


class CrmCoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "crm_core"
    verbose_name = "Solar CRM workflow"

    def ready(self):
        if not getattr(settings, "CRM_EVENTS_TOKEN", ""):
            logger.warning("CRM_EVENTS_TOKEN is not set; /crm/events/ will reject every push.")
