"""
Runtime scan options for PageTrainer.
"""

from typing import List, Dict, Optional
from dataclasses import dataclass, field

from pagetrainer.config import config as config_classes


@dataclass
class ScanConfig:
    """Scanner and trainer configuration."""
    url: Optional[str] = None
    max_pages: int = 100
    link_count_limit: int = 0
    timeout: int = 30
    delay: float = 0.5
    concurrent_requests: int = 10
    verify_ssl: bool = True
    custom_headers: Optional[Dict[str, str]] = None
    cookies: Optional[Dict[str, str]] = None
    proxy: Optional[str] = None

    max_trainings_per_url: int = 25
    fingerprint: bool = True
    redundant_patterns: List[str] = field(default_factory=list)
    exclude_patterns: List[str] = field(default_factory=list)
    exclude_extensions: List[str] = field(default_factory=list)
    allowed_content_types: List[str] = field(default_factory=list)
    denied_content_types: List[str] = field(default_factory=list)
    max_response_size: Optional[int] = None

    @classmethod
    def from_config(cls, name: str = 'default', **overrides) -> 'ScanConfig':
        """Build options from one of the configuration classes."""
        cfg = config_classes[name]
        options = cls(
            max_pages=cfg.SCANNER_MAX_PAGES,
            link_count_limit=cfg.SCANNER_LINK_COUNT_LIMIT,
            timeout=cfg.SCANNER_TIMEOUT,
            delay=cfg.SCANNER_DELAY_BETWEEN_REQUESTS,
            concurrent_requests=cfg.SCANNER_CONCURRENT_REQUESTS,
            verify_ssl=cfg.SCANNER_VERIFY_SSL,
            max_trainings_per_url=cfg.TRAINER_MAX_TRAININGS_PER_URL,
            fingerprint=cfg.TRAINER_FINGERPRINT,
            redundant_patterns=list(cfg.TRAINER_REDUNDANT_PATTERNS),
            exclude_patterns=list(cfg.TRAINER_EXCLUDE_PATTERNS),
            exclude_extensions=list(cfg.TRAINER_EXCLUDE_EXTENSIONS),
            allowed_content_types=list(cfg.TRAINER_ALLOWED_CONTENT_TYPES),
            denied_content_types=list(cfg.TRAINER_DENIED_CONTENT_TYPES),
            max_response_size=cfg.TRAINER_MAX_RESPONSE_SIZE,
        )
        for key, value in overrides.items():
            if not hasattr(options, key):
                raise TypeError(f"Unknown scan option: {key}")
            setattr(options, key, value)
        return options
