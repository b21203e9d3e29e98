"""Service settings, read from the environment."""

import os
from typing import Mapping, Optional

from pydantic import BaseModel, model_validator


class Settings(BaseModel):
    host: str = '0.0.0.0'
    port: int = 3000
    service_name: str = 'payments-service'
    service_version: str = '1.0.0'
    environment: str = 'development'
    log_level: str = 'INFO'

    # Simulated gateway latency, in seconds
    payment_delay_min: float = 0.1
    payment_delay_max: float = 0.3

    # Used by PaymentsClient when another service calls this one
    payment_service_url: str = 'http://payments:3000'
    payment_client_timeout: float = 30.0

    @model_validator(mode='after')
    def _check_delay_bounds(self) -> "Settings":
        if self.payment_delay_min < 0 or self.payment_delay_max < self.payment_delay_min:
            raise ValueError(
                f"Invalid payment delay bounds: min={self.payment_delay_min} max={self.payment_delay_max}"
            )
        return self

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == 'development'

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ

        def get(key: str, default: str) -> str:
            value = env.get(key)
            return value if value else default

        return cls(
            host=get('HOST', '0.0.0.0'),
            port=int(get('PORT', '3000')),
            service_name=get('SERVICE_NAME', 'payments-service'),
            service_version=get('SERVICE_VERSION', '1.0.0'),
            environment=get('ENVIRONMENT', 'development'),
            log_level=get('LOG_LEVEL', 'INFO'),
            payment_delay_min=float(get('PAYMENT_DELAY_MIN_SECONDS', '0.1')),
            payment_delay_max=float(get('PAYMENT_DELAY_MAX_SECONDS', '0.3')),
            payment_service_url=get('PAYMENT_SERVICE_URL', 'http://payments:3000'),
            payment_client_timeout=float(get('PAYMENT_CLIENT_TIMEOUT', '30')),
        )
