"""
Configuration Management
Configuration loading and validation for all components.
Supports YAML, JSON, and environment variable overrides.
"""

import os
import yaml
import json
import logging
from typing import Dict, List, Optional, Any
from pathlib import Path
from dataclasses import dataclass, field, asdict
import copy

SECTIONS = ("grid", "belief", "search", "agent", "evaluation", "logging")


@dataclass
class SystemConfig:
    """Complete system configuration."""

    # Core modules
    grid: Dict[str, Any] = field(default_factory=dict)
    belief: Dict[str, Any] = field(default_factory=dict)
    search: Dict[str, Any] = field(default_factory=dict)
    agent: Dict[str, Any] = field(default_factory=dict)
    evaluation: Dict[str, Any] = field(default_factory=dict)
    # System settings
    logging: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ConfigManager:
    """
    Configuration management.
    Handles loading, environment overrides and nested configurations.
    """

    def __init__(self, config_dir: str = "config"):
        self.config_dir = Path(config_dir)
        self.logger = logging.getLogger(__name__)

        self._config_cache: Dict[str, SystemConfig] = {}

        self.default_configs = {
            "main": self.config_dir / "main_config.yaml",
        }

        # GRIDIST_<SECTION>_<KEY>: first token is the section, the rest the key
        self.env_prefix = "GRIDIST_"

        self.logger.debug(f"Config Manager initialized: {config_dir}")

    def load_config(self, config_name: str = "main") -> SystemConfig:
        """
        Load configuration from file with environment overrides.

        Args:
            config_name: Configuration name to load

        Returns:
            Loaded system configuration
        """
        if config_name in self._config_cache:
            return self._config_cache[config_name]

        config_path = self.default_configs.get(
            config_name, self.config_dir / f"{config_name}_config.yaml"
        )

        if not config_path.exists():
            self.logger.warning(f"Config file not found: {config_path}")
            config_data = {}
        else:
            config_data = self._load_config_file(config_path)

        system_config = self.build_config(config_data)
        self._config_cache[config_name] = system_config

        self.logger.info(f"Configuration loaded: {config_name}")
        return system_config

    def build_config(self, config_data: Dict[str, Any]) -> SystemConfig:
        """Apply environment overrides and keep only known sections."""
        config_data = self._apply_env_overrides(config_data or {})

        unknown = set(config_data) - set(SECTIONS)
        if unknown:
            self.logger.warning(f"Ignoring unknown config sections: {sorted(unknown)}")

        return SystemConfig(**{k: v for k, v in config_data.items() if k in SECTIONS})

    def _load_config_file(self, config_path: Path) -> Dict[str, Any]:
        """Load configuration from YAML or JSON file."""
        with open(config_path, "r") as f:
            if config_path.suffix.lower() in [".yaml", ".yml"]:
                data = yaml.safe_load(f)
            elif config_path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                raise ValueError(f"Unsupported config format: {config_path.suffix}")

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"Config root must be a mapping: {config_path}")
        return data

    def _apply_env_overrides(self, config_data: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides."""
        overrides = {}

        for key, value in os.environ.items():
            if not key.startswith(self.env_prefix):
                continue

            config_key = key[len(self.env_prefix):].lower()
            section, _, option = config_key.partition("_")
            if section not in SECTIONS or not option:
                self.logger.warning(f"Ignoring environment override {key}")
                continue

            self._set_nested_value(overrides, [section, option], self._parse_env_value(value))

        if overrides:
            config_data = self._merge_configs(config_data, overrides)
            count = sum(len(v) for v in overrides.values())
            self.logger.info(f"Applied {count} environment overrides")

        return config_data

    def _parse_env_value(self, value: str) -> Any:
        """Parse environment variable value to appropriate type."""
        if value.lower() in ["true", "false"]:
            return value.lower() == "true"

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        # JSON for complex types
        try:
            return json.loads(value)
        except (json.JSONDecodeError, ValueError):
            pass

        return value

    def _set_nested_value(self, config: Dict[str, Any], path: List[str], value: Any):
        """Set value in nested dictionary."""
        current = config
        for key in path[:-1]:
            if key not in current:
                current[key] = {}
            current = current[key]

        current[path[-1]] = value

    def _merge_configs(
        self, base_config: Dict[str, Any], override_config: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Recursively merge configuration dictionaries."""
        result = copy.deepcopy(base_config)

        for key, value in override_config.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    def save_config(self, config: SystemConfig, output_path: str):
        """Save configuration to file."""
        output_path = Path(output_path)
        config_dict = config.to_dict()

        with open(output_path, "w") as f:
            if output_path.suffix.lower() in [".yaml", ".yml"]:
                yaml.dump(config_dict, f, default_flow_style=False, indent=2)
            else:
                json.dump(config_dict, f, indent=2)

        self.logger.info(f"Configuration saved to {output_path}")


# Convenience functions
def load_config(config_path: Optional[str] = None) -> SystemConfig:
    """Load system configuration."""
    if config_path:
        custom_path = Path(config_path)
        if not custom_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        manager = ConfigManager(str(custom_path.parent))
        return manager.build_config(manager._load_config_file(custom_path))

    return ConfigManager().load_config("main")


def validate_config(config: SystemConfig) -> Dict[str, List[str]]:
    """
    Validate system configuration.

    Returns:
        Dictionary of validation errors by component
    """
    errors = {}

    grid_errors = []
    if config.grid.get("connectivity", 8) not in (4, 8):
        grid_errors.append("Connectivity must be 4 or 8")
    if config.grid.get("step_cost", 1.0) <= 0:
        grid_errors.append("Step cost must be positive")
    if grid_errors:
        errors["grid"] = grid_errors

    belief_errors = []
    prior = config.belief.get("prior", {})
    p_free = prior.get("p_free", 0.5) if isinstance(prior, dict) else prior
    if isinstance(p_free, (int, float)) and not 0.0 <= p_free <= 1.0:
        belief_errors.append("Prior probability must lie in [0, 1]")
    if config.belief.get("update_rule", "smoothing") not in ("independent", "smoothing"):
        belief_errors.append(f"Unknown update rule: {config.belief.get('update_rule')}")
    if config.belief.get("cost_policy", "inverse") not in ("inverse", "linear", "threshold", "freespace"):
        belief_errors.append(f"Unknown cost policy: {config.belief.get('cost_policy')}")
    if config.belief.get("smoothing_radius", 2) < 1:
        belief_errors.append("Smoothing radius must be at least 1")
    if belief_errors:
        errors["belief"] = belief_errors

    search_errors = []
    if config.search.get("heuristic_weight", 1.0) < 0:
        search_errors.append("Heuristic weight must be non-negative")
    if config.search.get("heuristic_weight", 1.0) > 1.0:
        search_errors.append("Heuristic weight above 1 makes the heuristic inadmissible")
    if search_errors:
        errors["search"] = search_errors

    agent_errors = []
    if config.agent.get("sensor_radius", 1) < 0:
        agent_errors.append("Sensor radius must be non-negative")
    if config.agent.get("sensor_shape", "square") not in ("square", "diamond"):
        agent_errors.append(f"Unknown sensor shape: {config.agent.get('sensor_shape')}")
    max_steps = config.agent.get("max_steps")
    if max_steps is not None and max_steps <= 0:
        agent_errors.append("max_steps must be positive")
    if agent_errors:
        errors["agent"] = agent_errors

    evaluation_errors = []
    if config.evaluation.get("end", 10) < config.evaluation.get("start", 0):
        evaluation_errors.append("Trial window end must not precede start")
    if evaluation_errors:
        errors["evaluation"] = evaluation_errors

    return errors
