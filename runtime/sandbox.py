"""Container sandbox: command risk assessment and resource limits.

``assess_command_risk`` scans a raw shell command against an ordered table
of compiled patterns.  Every matching pattern contributes a reason; the
command takes the most severe tier among them.  HARD commands are refused
outright, SOFT ones run with extra isolation (see ``harden_config``).
"""

from __future__ import annotations

import logging
import re

from contracts.risk import RiskTier, max_risk
from contracts.sandbox import CommandAssessment, SandboxConfig, SandboxValidation

logger = logging.getLogger(__name__)

# Target of a destructive rm: /, /*, /home, /home/<user>, /root, ~, ~/*, $HOME,
# bare or wrapped in matching quotes
_ROOT_OR_HOME = (
    r"(?P<q>['\"]?)"
    r"(?:/|/home(?:/[^/\s;&|'\"]+)?|/root|~|\$HOME|\$\{HOME\})"
    r"(?:/?\*?)?(?P=q)(?=[\s;&|]|$)"
)

# Optional sudo with flags, e.g. "sudo -E "
_SUDO = r"(?:sudo(?:\s+-\S+)*\s+)?"

COMMAND_RISK_PATTERNS: tuple[tuple[re.Pattern[str], RiskTier, str], ...] = (
    # Filesystem destruction
    (re.compile(r"\brm\s+(?:-\S+\s+)+" + _ROOT_OR_HOME), RiskTier.HARD,
     "Recursive delete of root or home directory"),
    (re.compile(r"--no-preserve-root"), RiskTier.HARD, "rm without root protection"),
    (re.compile(r"\bmkfs(?:\.\w+)?\b"), RiskTier.HARD, "Filesystem creation/destruction"),
    (re.compile(r"\bdd\b.*\bof=/dev/"), RiskTier.HARD, "Direct disk write via dd"),
    (re.compile(r">\s*/dev/(?:sd[a-z]|hd[a-z]|nvme|disk)"), RiskTier.HARD, "Direct disk write"),
    (re.compile(r"\bchmod\s+(?:-R\s+)?0?777\s+/(?=\s|$)"), RiskTier.HARD,
     "World-writable permissions on root"),
    # Fork bombs
    (re.compile(r":\s*\(\s*\)\s*\{.*:\s*\|\s*:.*\}"), RiskTier.HARD, "Fork bomb pattern"),
    (re.compile(r"\b(\w+)\s*\(\s*\)\s*\{\s*\1\s*\|\s*\1\s*&"), RiskTier.HARD, "Fork bomb pattern"),
    # Remote code execution
    (re.compile(r"\b(?:curl|wget)\b[^|]*\|\s*" + _SUDO + r"(?:ba|z|da)?sh\b"), RiskTier.HARD,
     "Remote script piped to a shell"),
    (re.compile(r"\b(?:curl|wget)\b[^|]*\|\s*" + _SUDO + r"python[0-9.]*\b"), RiskTier.HARD,
     "Remote script piped to python"),
    (re.compile(r"\b(?:ba|z|da)?sh\s+(?:-c\s+)?[\"']?\$\(\s*(?:curl|wget)\b"), RiskTier.HARD,
     "Remote script run through command substitution"),
    (re.compile(r"<\(\s*(?:curl|wget)\b"), RiskTier.HARD,
     "Remote script run through process substitution"),
    # Privilege escalation
    (re.compile(r"\bsudo\b"), RiskTier.SOFT, "Privilege escalation via sudo"),
    (re.compile(r"\bsu\s+-"), RiskTier.SOFT, "Privilege escalation via su"),
    # Local modification
    (re.compile(r"\brm\s+(?:-\S+\s+)*-\S*[rR]"), RiskTier.SOFT, "Recursive delete"),
    (re.compile(r"\b(?:chmod|chown)\b"), RiskTier.SOFT, "Permission or ownership change"),
    (re.compile(r"\b(?:apt|apt-get|yum|dnf|apk|brew)\s+(?:install|remove|purge)\b"), RiskTier.SOFT,
     "System package change"),
    (re.compile(r"\b(?:pip3?|npm|yarn)\s+(?:install|i|add)\b"), RiskTier.SOFT, "Package install"),
    # Process control
    (re.compile(r"\b(?:kill|killall|pkill)\b"), RiskTier.SOFT, "Process termination"),
    (re.compile(r"\bsystemctl\s+(?:stop|disable|mask)\b"), RiskTier.SOFT, "Service disruption"),
    # Network egress
    (re.compile(r"\b(?:ssh|scp)\s+\S*@"), RiskTier.SOFT, "Outbound SSH connection"),
    (re.compile(r"\bnc\s+-l"), RiskTier.SOFT, "Netcat listener"),
    (re.compile(r"\b(?:curl|wget)\b"), RiskTier.SOFT, "Network download"),
)

# Ceilings applied to SOFT commands.
HARDENED_MEMORY_MB = 256
HARDENED_CPU_SHARES = 512

DEFAULT_SANDBOX_CONFIG = SandboxConfig()

SANDBOX_PRESETS: dict[str, SandboxConfig] = {
    "minimal": SandboxConfig(
        enabled=True, memory_limit_mb=128, cpu_shares=256, timeout_secs=10,
        read_only_root=True,
    ),
    "standard": SandboxConfig(
        enabled=True, memory_limit_mb=512, cpu_shares=1024, timeout_secs=30,
    ),
    "network": SandboxConfig(
        enabled=True, memory_limit_mb=512, cpu_shares=1024, timeout_secs=60,
        network_enabled=True,
    ),
    "development": SandboxConfig(
        enabled=True, image="python:3.12-slim", memory_limit_mb=2048,
        cpu_shares=2048, timeout_secs=300, network_enabled=True,
    ),
}


def assess_command_risk(command: str) -> CommandAssessment:
    if not isinstance(command, str) or not command.strip():
        return CommandAssessment(command=command if isinstance(command, str) else "")

    hits = [(tier, reason) for pattern, tier, reason in COMMAND_RISK_PATTERNS
            if pattern.search(command)]
    risk = max_risk(tier for tier, _ in hits)
    reasons: list[str] = []
    for _, reason in hits:
        if reason not in reasons:
            reasons.append(reason)

    return CommandAssessment(
        command=command,
        risk=risk,
        reasons=reasons,
        refuse=risk == RiskTier.HARD,
    )


def harden_config(
    config: SandboxConfig, assessment: CommandAssessment
) -> SandboxConfig | None:
    """Sandbox settings for running the assessed command, or None to refuse."""
    if assessment.risk == RiskTier.HARD:
        logger.warning("Refusing sandboxed command: %s (%s)",
                       assessment.command, "; ".join(assessment.reasons))
        return None
    if assessment.risk == RiskTier.SOFT:
        return config.model_copy(update={
            "network_enabled": False,
            "drop_capabilities": True,
            "memory_limit_mb": min(config.memory_limit_mb, HARDENED_MEMORY_MB),
            "cpu_shares": min(config.cpu_shares, HARDENED_CPU_SHARES),
        })
    return config


def should_sandbox(config: SandboxConfig, command: str) -> bool:
    return config.enabled and bool(command and command.strip())


def validate_sandbox_config(config: SandboxConfig) -> SandboxValidation:
    errors: list[str] = []
    warnings: list[str] = []

    if not config.image.strip():
        errors.append("Container image is required")
    if config.memory_limit_mb < 64:
        errors.append("Memory limit must be at least 64 MB")
    elif config.memory_limit_mb > 8192:
        errors.append("Memory limit cannot exceed 8 GB")
    elif config.memory_limit_mb > 4096:
        warnings.append("Memory limit above 4 GB")
    if config.cpu_shares < 2:
        errors.append("CPU shares must be at least 2")
    if config.timeout_secs < 1:
        errors.append("Timeout must be at least 1 second")
    elif config.timeout_secs > 3600:
        errors.append("Timeout cannot exceed 1 hour")
    elif config.timeout_secs > 600:
        warnings.append("Timeout above 10 minutes")
    if config.network_enabled:
        warnings.append("Network access is enabled inside the sandbox")
    if not config.drop_capabilities:
        warnings.append("Linux capabilities are not dropped")

    return SandboxValidation(valid=not errors, errors=errors, warnings=warnings)


def format_memory_limit(mb: int) -> str:
    if mb >= 1024:
        if mb % 1024 == 0:
            return f"{mb // 1024} GB"
        return f"{mb / 1024:.1f} GB"
    return f"{mb} MB"


def describe_sandbox_config(config: SandboxConfig) -> str:
    if not config.enabled:
        return "Sandbox disabled"
    network = "network" if config.network_enabled else "no network"
    return (
        f"{config.image} · {format_memory_limit(config.memory_limit_mb)}"
        f" · {config.timeout_secs}s · {network}"
    )
