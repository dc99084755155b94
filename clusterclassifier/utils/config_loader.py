"""
Configuration loader for the cluster classifier
Loads engine settings and Classifier manifests from YAML files
"""

import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field
from .logger import get_logger
from ..k8s.registry import ResourceKind, ResourceKindRegistry
from ..models import Classifier
from ..evaluation.events import EventSource

logger = get_logger("ConfigLoader")


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "INFO"
    file: Optional[str] = None


@dataclass
class EngineConfig:
    """Evaluation engine configuration"""
    max_workers: int = 4
    ordering: str = "creation"  # creation | name
    resource_kinds: List[Dict[str, Any]] = field(default_factory=list)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def __post_init__(self):
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.ordering not in ("creation", "name"):
            raise ValueError(f"ordering must be 'creation' or 'name', got {self.ordering!r}")


class ConfigLoader:
    """
    Loads and manages classifier configuration files

    Layout of config_dir:
        engine.yaml       engine settings
        classifiers/      Classifier manifests (*.yaml, multi-document)
        eventsources/     EventSource manifests (optional)
    """

    def __init__(self, config_dir: str = "config"):
        """
        Initialize ConfigLoader

        Args:
            config_dir: Directory containing YAML config files
        """
        self.config_dir = Path(config_dir)

        if not self.config_dir.exists():
            raise FileNotFoundError(f"Config directory not found: {config_dir}")

        logger.info(f"Loading configuration from: {self.config_dir}")

        self.engine_raw = self._load_yaml("engine.yaml")

        # Parse into structured objects
        self._parse_engine()
        self.classifiers: Dict[str, Classifier] = self._load_manifests("classifiers", "Classifier", Classifier.from_dict)
        self.event_sources: Dict[str, EventSource] = self._load_manifests("eventsources", "EventSource", EventSource.from_dict)

        logger.info(f"Loaded {len(self.classifiers)} classifiers, {len(self.event_sources)} event sources")

    def _load_yaml(self, filename: str) -> Dict[str, Any]:
        """Load a YAML file"""
        filepath = self.config_dir / filename

        if not filepath.exists():
            raise FileNotFoundError(f"Config file not found: {filepath}")

        with open(filepath, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)

        logger.debug(f"Loaded {filename}")
        return data or {}

    def _parse_engine(self):
        """Parse engine.yaml"""
        engine = self.engine_raw.get('engine', {}) or {}
        logging_data = self.engine_raw.get('logging', {}) or {}

        self.engine = EngineConfig(
            max_workers=engine.get('max_workers', 4),
            ordering=engine.get('ordering', 'creation'),
            resource_kinds=list(self.engine_raw.get('resource_kinds', []) or []),
            logging=LoggingConfig(
                level=logging_data.get('level', 'INFO'),
                file=logging_data.get('file')
            )
        )

    def _load_manifests(self, subdir: str, kind: str, parse) -> Dict[str, Any]:
        """Load every manifest of the given kind found in subdir"""
        directory = self.config_dir / subdir
        loaded: Dict[str, Any] = {}

        if not directory.is_dir():
            logger.debug(f"No {subdir}/ directory, skipping")
            return loaded

        for path in sorted(directory.glob("*.y*ml")):
            with open(path, 'r', encoding='utf-8') as f:
                documents = list(yaml.safe_load_all(f))

            for doc in documents:
                if not doc:
                    continue
                if doc.get('kind') != kind:
                    logger.warning(f"Skipping {doc.get('kind')} document in {path.name}")
                    continue
                item = parse(doc)
                if item.name in loaded:
                    raise ValueError(f"Duplicate {kind} {item.name!r} in {path.name}")
                loaded[item.name] = item

            logger.debug(f"Loaded {path.name}")

        return loaded

    def build_registry(self) -> ResourceKindRegistry:
        """Builtin kinds plus the resource_kinds declared in engine.yaml"""
        registry = ResourceKindRegistry.with_builtin_kinds()
        for data in self.engine.resource_kinds:
            registry.register(ResourceKind.from_dict(data))
        return registry

    def get_classifier(self, name: str) -> Optional[Classifier]:
        """Get classifier by name"""
        return self.classifiers.get(name)

    def get_all_classifiers(self) -> List[Classifier]:
        """All classifiers, sorted by name"""
        return [self.classifiers[name] for name in sorted(self.classifiers)]

    def reload(self):
        """Reload all configuration files"""
        logger.info("Reloading configuration...")
        self.__init__(config_dir=str(self.config_dir))
