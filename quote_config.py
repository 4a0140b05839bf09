import os
from dataclasses import dataclass, field


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    return int(raw) if raw.strip().isdigit() else default


@dataclass
class Settings:
    """Runtime settings, read from the environment when instantiated."""

    smtp_server: str = field(default_factory=lambda: os.environ.get("SMTP_SERVER", ""))
    smtp_port: int = field(default_factory=lambda: _env_int("SMTP_PORT", 587))
    smtp_user: str = field(default_factory=lambda: os.environ.get("SMTP_USER", ""))
    smtp_pass: str = field(default_factory=lambda: os.environ.get("SMTP_PASS", ""))
    from_email: str = field(default_factory=lambda: os.environ.get("FROM_EMAIL", ""))
    output_dir: str = field(default_factory=lambda: os.environ.get("QUOTE_OUTPUT_DIR", "outputs"))
    log_level: str = field(default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO").upper())
    read_attempts: int = 2
    read_backoff_seconds: float = 1.0
    email_subject: str = "概算見積の作成が完了しました"
    email_body: str = "概算見積の作成が完了しました。\n添付ファイルをご確認ください。"
