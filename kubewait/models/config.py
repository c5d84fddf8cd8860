"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class TimeoutConfig:
    """Default deadlines (seconds) per typed waiter."""

    build_create: float = 120.0
    build_complete: float = 600.0
    image_stream_tag: float = 300.0
    rollout: float = 900.0
    service_account: float = 180.0
    quota: float = 120.0
    job: float = 300.0
    pods: float = 300.0
    samples: float = 150.0
    user_authorized: float = 60.0
    build_event: float = 60.0


@dataclass
class PollConfig:
    """Fixed poll intervals (seconds)."""

    build_create_interval: float = 1.0
    service_account_interval: float = 0.1
    pod_interval: float = 1.0
    job_interval: float = 1.0
    samples_interval: float = 10.0
    authorization_interval: float = 1.0
    event_interval: float = 2.0


@dataclass
class WatchConfig:
    """Watch channel behaviour."""

    server_timeout_seconds: int = 300
    reconnect_delay: float = 1.0


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class PathConfig:
    """Filesystem locations handed to the initialization context."""

    kubeconfig: str = ""
    artifact_dir: str = ""
    fixture_root: str = ""


@dataclass
class KubeWaitConfig:
    """Top-level kubewait configuration."""

    timeouts: TimeoutConfig = field(default_factory=TimeoutConfig)
    poll: PollConfig = field(default_factory=PollConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)
    log: LogConfig = field(default_factory=LogConfig)
    paths: PathConfig = field(default_factory=PathConfig)
