"""
Configuration Management
========================

Handles loading engine configuration from environment variables and config files.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "decisionforge_config.json"

# Environment variable -> config key
ENV_VARS = {
    "DECISIONFORGE_TENANT_ID": "tenant_id",
    "DECISIONFORGE_SOURCE": "source",
    "DECISIONFORGE_ENVIRONMENT": "environment",
    "DECISIONFORGE_BRANCH_ID": "branch_id",
    "DECISIONFORGE_TEMPLATES": "templates_path",
}


@dataclass
class EngineConfig:
    """Decision engine configuration."""
    tenant_id: str = "default"
    source: str = "decision-engine"
    environment: str = "development"
    branch_id: str = "main"
    operation: str = "process_scenario"
    templates_path: Optional[str] = None
    principles: list[str] = field(default_factory=list)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "EngineConfig":
        """
        Load configuration from multiple sources in precedence order:
        1. Environment variables
        2. Local config file (decisionforge_config.json)
        3. Default values
        """
        config = asdict(cls())
        known = {f.name for f in fields(cls)}

        # Load from config file if exists
        config_path = Path(config_path) if config_path else Path(CONFIG_FILENAME)
        if config_path.exists():
            try:
                with open(config_path, "r") as f:
                    file_config = json.load(f)
                config.update({k: v for k, v in file_config.items() if k in known})
            except (OSError, json.JSONDecodeError, AttributeError) as e:
                logger.warning("Failed to load config file %s: %s", config_path, e)

        # Override with environment variables
        for env_name, key in ENV_VARS.items():
            value = os.environ.get(env_name)
            if value:
                config[key] = value

        return cls(**config)

    def template_files(self) -> list[Path]:
        """Extra strategy template files to load into the registry."""
        return [Path(self.templates_path)] if self.templates_path else []
