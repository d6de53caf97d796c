"""
Startup Configuration Checks
AI, storage and contact settings are checked once before the app serves requests
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

import phonenumbers

from salescrm.core.config import Settings

logger = logging.getLogger(__name__)


class CheckLevel(str, Enum):
    OK = "ok"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class ConfigCheck:
    """Outcome of one setting check"""
    area: str
    setting: str
    level: CheckLevel
    message: str

    @property
    def is_error(self) -> bool:
        return self.level == CheckLevel.ERROR


class StartupValidator:
    """
    Checks Settings before the lifespan wires the services.

    Missing credentials only degrade the app (offline AI assessor, in-memory
    repository) and are reported as warnings. Values that cannot work are
    errors. With strict=True, warnings are promoted to errors.
    """

    def __init__(self, settings: Settings, strict: bool = False):
        self.settings = settings
        self.strict = strict
        self.checks: List[ConfigCheck] = []

    def run(self) -> List[ConfigCheck]:
        self.checks = []
        s = self.settings

        if s.groq_api_key:
            self._record("llm", "GROQ_API_KEY", CheckLevel.OK, f"Groq configured, model {s.llm_model}")
        else:
            self._record("llm", "GROQ_API_KEY", CheckLevel.WARNING,
                         "No Groq key, contacts will be assessed in offline mode")

        if s.ai_timeout_seconds <= 0:
            self._record("llm", "AI_TIMEOUT_SECONDS", CheckLevel.ERROR,
                         f"AI timeout must be positive, got {s.ai_timeout_seconds}")

        if s.database_url:
            self._record("storage", "DATABASE_URL", CheckLevel.OK, "Database configured")
        else:
            self._record("storage", "DATABASE_URL", CheckLevel.WARNING,
                         "No database, contacts are kept in memory and lost on restart")

        if s.default_phone_region in phonenumbers.SUPPORTED_REGIONS:
            self._record("contacts", "DEFAULT_PHONE_REGION", CheckLevel.OK,
                         f"National numbers parsed as {s.default_phone_region}")
        else:
            self._record("contacts", "DEFAULT_PHONE_REGION", CheckLevel.ERROR,
                         f"Unknown phone region '{s.default_phone_region}'")

        if s.default_max_contacts < 0:
            self._record("contacts", "DEFAULT_MAX_CONTACTS", CheckLevel.ERROR,
                         f"Advisor capacity cannot be negative, got {s.default_max_contacts}")

        return self.checks

    def _record(self, area: str, setting: str, level: CheckLevel, message: str) -> None:
        if level == CheckLevel.WARNING and self.strict:
            level = CheckLevel.ERROR
        self.checks.append(ConfigCheck(area=area, setting=setting, level=level, message=message))

    @property
    def errors(self) -> List[ConfigCheck]:
        return [c for c in self.checks if c.is_error]

    def log_checks(self) -> None:
        for check in self.checks:
            line = f"[{check.area}] {check.setting}: {check.message}"
            if check.level == CheckLevel.OK:
                logger.info(line)
            elif check.level == CheckLevel.WARNING:
                logger.warning(line)
            else:
                logger.error(line)

    def error_summary(self) -> Optional[str]:
        if not self.errors:
            return None
        return "Invalid configuration:\n" + "\n".join(f"  - {c.setting}: {c.message}" for c in self.errors)


def validate_settings_on_startup(settings: Settings, strict: bool = False) -> None:
    """
    Run the startup checks and log them.

    Raises:
        RuntimeError: If any check failed
    """
    validator = StartupValidator(settings, strict=strict)
    validator.run()
    validator.log_checks()

    summary = validator.error_summary()
    if summary:
        raise RuntimeError(summary)

    logger.info("Configuration checks passed")
