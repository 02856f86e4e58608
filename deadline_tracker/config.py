import os
from dataclasses import dataclass


def _flag(value: str) -> bool:
    return value in ("1", "true", "True", "yes")


@dataclass
class TrackerConfig:
    directory_url: str = "http://localhost:3000"
    search_max_results: int = 50
    search_debounce_ms: int = 300
    request_timeout: float = 10.0
    resend_api_key: str = ""
    resend_from_email: str = "onboarding@resend.dev"
    app_url: str = "http://localhost:8501"
    profile_path: str = "~/.deadline_tracker/profile.json"
    user_email: str = ""
    debug: bool = False
    log_level: str = "INFO"

    @property
    def search_debounce_seconds(self) -> float:
        return max(0, self.search_debounce_ms) / 1000.0

    def email_configured(self) -> bool:
        return bool(self.resend_api_key)

    @staticmethod
    def from_env(prefix: str = "DT_") -> "TrackerConfig":
        defaults = TrackerConfig()
        try:
            timeout = float(os.getenv(f"{prefix}REQUEST_TIMEOUT", str(defaults.request_timeout)))
        except ValueError:
            timeout = defaults.request_timeout
        return TrackerConfig(
            directory_url=os.getenv(f"{prefix}DIRECTORY_URL", defaults.directory_url).rstrip("/"),
            search_max_results=int(os.getenv(f"{prefix}SEARCH_MAX_RESULTS", str(defaults.search_max_results))),
            search_debounce_ms=int(os.getenv(f"{prefix}SEARCH_DEBOUNCE_MS", str(defaults.search_debounce_ms))),
            request_timeout=timeout,
            # The mail API key is commonly provisioned without our prefix
            resend_api_key=os.getenv(f"{prefix}RESEND_API_KEY", os.getenv("RESEND_API_KEY", "")),
            resend_from_email=os.getenv(
                f"{prefix}RESEND_FROM_EMAIL", os.getenv("RESEND_FROM_EMAIL", defaults.resend_from_email)
            ),
            app_url=os.getenv(f"{prefix}APP_URL", defaults.app_url).rstrip("/"),
            profile_path=os.getenv(f"{prefix}PROFILE_PATH", defaults.profile_path),
            user_email=os.getenv(f"{prefix}USER_EMAIL", ""),
            debug=_flag(os.getenv(f"{prefix}DEBUG", "0")),
            log_level=os.getenv(f"{prefix}LOG_LEVEL", defaults.log_level).upper(),
        )
