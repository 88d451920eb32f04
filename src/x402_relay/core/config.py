"""
Configuration objects and helpers for the x402 relay client.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .environment import build_environment
from .signer import Signer

__all__ = [
    "ClientConfig",
    "ClientParameters",
    "ConfigError",
    "load_client_config",
]

DEFAULT_API_URL = "https://x402.unreel.ai"
DEFAULT_RPC_URL = "https://api.mainnet-beta.solana.com"

_PARAMETER_TO_ENV_KEY = {
    "private_key": "SVM_PRIVATE_KEY",
    "api_url": "X402_API_URL",
    "relay_url": "X402_RELAY_URL",
    "rpc_url": "X402_RPC_URL",
    "request_timeout": "X402_REQUEST_TIMEOUT_SECONDS",
    "job_max_attempts": "X402_JOB_MAX_ATTEMPTS",
    "job_initial_delay": "X402_JOB_INITIAL_DELAY_SECONDS",
}


class ConfigError(Exception):
    """Raised when the supplied configuration is invalid."""


@dataclass(frozen=True)
class ClientParameters:
    """
    Explicit parameter bundle for :func:`load_client_config`. Every field
    set here overrides the matching environment variable.
    """

    private_key: Optional[str] = None
    api_url: Optional[str] = None
    relay_url: Optional[str] = None
    rpc_url: Optional[str] = None
    request_timeout: Optional[float | int | str] = None
    job_max_attempts: Optional[int | str] = None
    job_initial_delay: Optional[float | int | str] = None

    def as_overrides(self) -> Dict[str, str]:
        return _as_overrides(
            {name: getattr(self, name) for name in _PARAMETER_TO_ENV_KEY}
        )


def _as_overrides(values: Mapping[str, Any]) -> Dict[str, str]:
    overrides: Dict[str, str] = {}
    for name, value in values.items():
        if value is None:
            continue
        overrides[_PARAMETER_TO_ENV_KEY[name]] = str(value)
    return overrides


def _require(values: Mapping[str, str], key: str) -> str:
    value = (values.get(key) or "").strip()
    if not value:
        raise ConfigError(f"{key} must be provided")
    return value


def _url(values: Mapping[str, str], key: str, default: Optional[str] = None) -> str:
    value = (values.get(key) or default or "").strip()
    if not value:
        raise ConfigError(f"{key} must be provided")
    if not value.startswith(("http://", "https://")):
        raise ConfigError(f"{key} must be an http(s) URL, got '{value}'")
    return value.rstrip("/")


def _positive(values: Mapping[str, str], key: str, default: str, kind: type) -> Any:
    raw = (values.get(key) or default).strip()
    try:
        number = kind(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be a number, got '{raw}'") from exc
    if number <= 0:
        raise ConfigError(f"{key} must be greater than zero")
    return number


@dataclass(frozen=True)
class ClientConfig:
    signer: Signer = field(repr=False)
    relay_url: str
    api_url: str = DEFAULT_API_URL
    rpc_url: str = DEFAULT_RPC_URL
    request_timeout: float = 120.0
    job_max_attempts: int = 60
    job_initial_delay: float = 5.0

    @property
    def wallet_address(self) -> str:
        return self.signer.address

    @classmethod
    def from_mapping(cls, values: Mapping[str, str]) -> "ClientConfig":
        secret = _require(values, "SVM_PRIVATE_KEY")
        try:
            signer = Signer.from_base58(secret)
        except (TypeError, ValueError) as exc:
            raise ConfigError(
                "SVM_PRIVATE_KEY must be a base58-encoded 64-byte Solana secret key"
            ) from exc

        return cls(
            signer=signer,
            relay_url=_url(values, "X402_RELAY_URL"),
            api_url=_url(values, "X402_API_URL", DEFAULT_API_URL),
            rpc_url=_url(values, "X402_RPC_URL", DEFAULT_RPC_URL),
            request_timeout=_positive(values, "X402_REQUEST_TIMEOUT_SECONDS", "120", float),
            job_max_attempts=_positive(values, "X402_JOB_MAX_ATTEMPTS", "60", int),
            job_initial_delay=_positive(values, "X402_JOB_INITIAL_DELAY_SECONDS", "5", float),
        )

    @classmethod
    def from_env(
        cls,
        *,
        env_file: Optional[str] = ".env",
        overrides: Optional[Mapping[str, str]] = None,
        base: Optional[Mapping[str, str]] = None,
        parameters: Optional[ClientParameters] = None,
        **explicit: Any,
    ) -> "ClientConfig":
        unknown = set(explicit) - set(_PARAMETER_TO_ENV_KEY)
        if unknown:
            raise TypeError(f"Unknown client parameter(s): {', '.join(sorted(unknown))}")

        merged_overrides = dict(overrides or {})
        if parameters is not None:
            merged_overrides.update(parameters.as_overrides())
        merged_overrides.update(_as_overrides(explicit))

        environment = build_environment(
            env_file=env_file,
            base=base,
            overrides=merged_overrides,
        )
        return cls.from_mapping(environment.variables)


def load_client_config(
    *,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
    base: Optional[Mapping[str, str]] = None,
    parameters: Optional[ClientParameters] = None,
    private_key: Optional[str] = None,
    api_url: Optional[str] = None,
    relay_url: Optional[str] = None,
    rpc_url: Optional[str] = None,
    request_timeout: Optional[float | int | str] = None,
    job_max_attempts: Optional[int | str] = None,
    job_initial_delay: Optional[float | int | str] = None,
) -> ClientConfig:
    """
    Convenience wrapper that mirrors :meth:`ClientConfig.from_env`.

    Settings can come from environment variables, a ``.env`` file, keyword
    arguments, or any combination of the three; keyword arguments win.
    """
    return ClientConfig.from_env(
        env_file=env_file,
        overrides=overrides,
        base=base,
        parameters=parameters,
        private_key=private_key,
        api_url=api_url,
        relay_url=relay_url,
        rpc_url=rpc_url,
        request_timeout=request_timeout,
        job_max_attempts=job_max_attempts,
        job_initial_delay=job_initial_delay,
    )
