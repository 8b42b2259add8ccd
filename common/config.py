"""
Configuration management for the speed tester
"""
import os
from typing import Dict, Any


class Config:
    """Central configuration class"""

    # Server Configuration
    SERVE_ADDR = os.getenv("SPEEDTEST_ADDR", ":5555")
    HANDSHAKE_MAX_BYTES = int(os.getenv("HANDSHAKE_MAX_BYTES", "256"))

    # Buffer Configuration
    CHUNK_SIZE = os.getenv("CHUNK_SIZE", "64KB")
    BUFFER_SIZE = os.getenv("BUFFER_SIZE", "16MiB")
    POOL_SLACK = int(os.getenv("POOL_SLACK", "10"))  # extra free slots in the pool queue

    # Reporting Configuration
    REPORT_INTERVAL = float(os.getenv("REPORT_INTERVAL", "1.0"))  # seconds

    # Metrics Configuration
    METRICS_PORT = int(os.getenv("METRICS_PORT", "0"))  # 0 disables the exporter

    # Logging Configuration
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT = os.getenv(
        "LOG_FORMAT", "%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    @classmethod
    def get_config_dict(cls) -> Dict[str, Any]:
        """Get all configuration as dictionary"""
        return {
            key: value
            for key, value in cls.__dict__.items()
            if not key.startswith("_") and key.isupper()
        }

    @classmethod
    def update_from_dict(cls, config_dict: Dict[str, Any]):
        """Update configuration from dictionary"""
        for key, value in config_dict.items():
            if hasattr(cls, key):
                setattr(cls, key, value)
