"""Configuration loading from environment variables."""

from __future__ import annotations

import os

from kubewait.models.config import (
    KubeWaitConfig,
    LogConfig,
    PathConfig,
    PollConfig,
    TimeoutConfig,
    WatchConfig,
)


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"KUBEWAIT_{key}", default)


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_float(key: str, default: float, min_val: float | None = None) -> float:
    val = float(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    return val


def _env_timeout(key: str, default: float) -> float:
    val = _env_float(key, default)
    if val <= 0:
        raise ValueError(f"Invalid timeout for KUBEWAIT_{key}: {val}. Must be positive")
    return val


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def load_config() -> KubeWaitConfig:
    """Load configuration from KUBEWAIT_* environment variables."""
    return KubeWaitConfig(
        timeouts=TimeoutConfig(
            build_create=_env_timeout("BUILD_CREATE_TIMEOUT", 120.0),
            build_complete=_env_timeout("BUILD_COMPLETE_TIMEOUT", 600.0),
            image_stream_tag=_env_timeout("IMAGE_STREAM_TAG_TIMEOUT", 300.0),
            rollout=_env_timeout("ROLLOUT_TIMEOUT", 900.0),
            service_account=_env_timeout("SERVICE_ACCOUNT_TIMEOUT", 180.0),
            quota=_env_timeout("QUOTA_TIMEOUT", 120.0),
            job=_env_timeout("JOB_TIMEOUT", 300.0),
            pods=_env_timeout("PODS_TIMEOUT", 300.0),
            samples=_env_timeout("SAMPLES_TIMEOUT", 150.0),
            user_authorized=_env_timeout("USER_AUTHORIZED_TIMEOUT", 60.0),
            build_event=_env_timeout("BUILD_EVENT_TIMEOUT", 60.0),
        ),
        poll=PollConfig(
            build_create_interval=_env_float("BUILD_CREATE_INTERVAL", 1.0, min_val=0.05),
            service_account_interval=_env_float("SERVICE_ACCOUNT_INTERVAL", 0.1, min_val=0.05),
            pod_interval=_env_float("POD_INTERVAL", 1.0, min_val=0.05),
            job_interval=_env_float("JOB_INTERVAL", 1.0, min_val=0.05),
            samples_interval=_env_float("SAMPLES_INTERVAL", 10.0, min_val=0.05),
            authorization_interval=_env_float("AUTHORIZATION_INTERVAL", 1.0, min_val=0.05),
            event_interval=_env_float("EVENT_INTERVAL", 2.0, min_val=0.05),
        ),
        watch=WatchConfig(
            server_timeout_seconds=_env_int("WATCH_SERVER_TIMEOUT", 300, min_val=1, max_val=3600),
            reconnect_delay=_env_float("WATCH_RECONNECT_DELAY", 1.0, min_val=0.0),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
        ),
        paths=PathConfig(
            kubeconfig=_env("KUBECONFIG", os.environ.get("KUBECONFIG", "")),
            artifact_dir=_env("ARTIFACT_DIR", os.environ.get("ARTIFACT_DIR", "")),
            fixture_root=_env("FIXTURE_ROOT", ""),
        ),
    )
