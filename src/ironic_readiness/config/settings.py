# Copyright 2025 iGenius S.p.A
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ironic_readiness.exceptions import ConfigurationError
from ironic_readiness.platform.protocols import Endpoint

DEFAULT_MICROVERSION = "1.52"

IRONIC_NAME = "Ironic"
INSPECTOR_NAME = "Ironic Inspector"


class Settings(BaseSettings):
    """
    Centralized environment configuration for ironic-readiness.

    The endpoints use the names the bare-metal operator already exports
    (IRONIC_ENDPOINT, ...); the waiting knobs are IRONIC_READINESS_<FIELD_NAME>.
    A .env file in CWD is read automatically.
    """

    model_config = SettingsConfigDict(
        env_prefix="IRONIC_READINESS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    # --- Endpoints -----------------------------------------------------------
    ironic_endpoint: str | None = Field(
        default=None,
        alias="IRONIC_ENDPOINT",
        description="Base URL of the Ironic API, e.g. http://ironic:6385/v1/",
    )
    ironic_microversion: str = Field(
        default=DEFAULT_MICROVERSION,
        alias="IRONIC_MICROVERSION",
        description="Ironic API microversion sent with every Ironic request",
    )
    inspector_endpoint: str | None = Field(
        default=None,
        alias="IRONIC_INSPECTOR_ENDPOINT",
        description="Base URL of the Ironic Inspector API",
    )

    # --- Waiting -------------------------------------------------------------
    timeout_s: float = Field(default=600, gt=0)  # IRONIC_READINESS_TIMEOUT_S
    poll_interval_s: float = Field(default=5.0, gt=0)
    request_timeout_s: float = Field(default=5.0, gt=0)
    require_drivers: bool = Field(
        default=False,
        description="Fail when Ironic is reachable but has no drivers loaded",
    )
    log_level: str = "INFO"

    @field_validator("ironic_endpoint", "inspector_endpoint", mode="before")
    @classmethod
    def _empty_is_unset(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("ironic_microversion", mode="before")
    @classmethod
    def _default_microversion(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_MICROVERSION
        return v

    def endpoints(self) -> tuple[Endpoint, Endpoint]:
        missing = []
        if not self.ironic_endpoint:
            missing.append("IRONIC_ENDPOINT")
        if not self.inspector_endpoint:
            missing.append("IRONIC_INSPECTOR_ENDPOINT")
        if missing:
            raise ConfigurationError(missing)
        return (
            Endpoint(IRONIC_NAME, self.ironic_endpoint, self.ironic_microversion),
            Endpoint(INSPECTOR_NAME, self.inspector_endpoint),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Cached accessor. Call this wherever you need settings.
    Tests can `cache_clear()` before reading to pick up monkeypatched env.
    """
    return Settings()


def reload_settings_cache() -> None:
    get_settings.cache_clear()  # type: ignore[attr-defined]
