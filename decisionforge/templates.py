"""
Strategy Templates
==================

Registry of per-kind strategy content. Each template supplies the steps,
reasoning, advantages and limitations for every strategy mode, and is the
single authority for that content: the engine never writes strategy prose
itself.

Templates come from two sources feeding the same registry:
- DEFAULT_TEMPLATES defined in this module
- Optional JSON files (see load_templates_file)

JSON format:
    {
      "templates": [
        {
          "kind": "api-integration",
          "description": "...",
          "high_sensitivity": false,
          "creates_repository": false,
          "modes": {
            "connected": {"steps": [...], "reasoning": [...], "advantages": [...],
                          "limitations": [...], "summary": "...", "confidence": 0.9},
            "local": {...}
          }
        }
      ]
    }
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from decisionforge.errors import StrategyGenerationFailure
from decisionforge.models import StrategyMode, parse_mode

logger = logging.getLogger(__name__)


# Baseline confidence per mode. Connected mode assumes live environment
# access, local mode assumes offline/sandboxed access.
MODE_BASELINES: dict[StrategyMode, float] = {
    StrategyMode.CONNECTED: 0.92,
    StrategyMode.LOCAL: 0.78,
}


@dataclass(frozen=True)
class ModeTemplate:
    """Narrative content for one strategy mode."""
    steps: tuple[str, ...]
    reasoning: tuple[str, ...]
    advantages: tuple[str, ...]
    limitations: tuple[str, ...]
    summary: str
    confidence: Optional[float] = None  # Overrides the mode baseline

    @classmethod
    def from_dict(cls, data: dict) -> "ModeTemplate":
        """Create ModeTemplate from dictionary."""
        confidence = data.get("confidence")
        return cls(
            steps=tuple(data.get("steps", [])),
            reasoning=tuple(data.get("reasoning", [])),
            advantages=tuple(data.get("advantages", [])),
            limitations=tuple(data.get("limitations", [])),
            summary=data.get("summary", ""),
            confidence=float(confidence) if confidence is not None else None,
        )


@dataclass(frozen=True)
class StrategyTemplate:
    """Strategy content for one scenario kind, across all modes."""
    kind: str
    description: str
    modes: dict[StrategyMode, ModeTemplate] = field(default_factory=dict)
    high_sensitivity: bool = False
    creates_repository: bool = False

    def for_mode(self, mode: StrategyMode) -> ModeTemplate:
        """
        Get the content for a mode.

        Raises:
            StrategyGenerationFailure: if the template has no content for mode
        """
        try:
            return self.modes[mode]
        except KeyError:
            raise StrategyGenerationFailure(
                f"Template '{self.kind}' has no content for mode '{mode.value}'",
                scenario_kind=self.kind,
            ) from None

    def confidence_for(self, mode: StrategyMode) -> float:
        """Get the confidence for a mode: template override or mode baseline."""
        override = self.for_mode(mode).confidence
        confidence = MODE_BASELINES[mode] if override is None else override
        return max(0.0, min(1.0, confidence))

    @classmethod
    def from_dict(cls, data: dict) -> "StrategyTemplate":
        """Create StrategyTemplate from dictionary."""
        kind = str(data.get("kind", "")).strip()
        if not kind:
            raise ValueError("Strategy template is missing 'kind'")
        modes = {
            parse_mode(mode_name): ModeTemplate.from_dict(mode_data)
            for mode_name, mode_data in (data.get("modes") or {}).items()
        }
        return cls(
            kind=kind,
            description=data.get("description", ""),
            modes=modes,
            high_sensitivity=bool(data.get("high_sensitivity", False)),
            creates_repository=bool(data.get("creates_repository", False)),
        )


class TemplateRegistry:
    """Tagged lookup table of StrategyTemplates keyed by scenario kind."""

    def __init__(self, templates: Optional[Iterable[StrategyTemplate]] = None):
        self._templates: dict[str, StrategyTemplate] = {}
        for template in templates or []:
            self.register(template)

    def __contains__(self, kind: object) -> bool:
        return kind in self._templates

    def __len__(self) -> int:
        return len(self._templates)

    def register(self, template: StrategyTemplate) -> None:
        """Register a template, replacing any existing one for the kind."""
        if template.kind in self._templates:
            logger.info("Replacing strategy template for kind %r", template.kind)
        self._templates[template.kind] = template

    def get(self, kind: str) -> Optional[StrategyTemplate]:
        """Get the template for a kind, or None."""
        return self._templates.get(kind)

    def resolve(self, kind: str) -> StrategyTemplate:
        """
        Get the template for a kind.

        Raises:
            StrategyGenerationFailure: if no template is registered for kind
        """
        template = self._templates.get(kind)
        if template is None:
            raise StrategyGenerationFailure(
                f"No strategy template registered for scenario kind '{kind}'",
                scenario_kind=kind,
            )
        return template

    def kinds(self) -> list[str]:
        """List registered kinds in sorted order."""
        return sorted(self._templates)

    def high_sensitivity_kinds(self) -> frozenset[str]:
        """Kinds whose templates are flagged high-sensitivity."""
        return frozenset(k for k, t in self._templates.items() if t.high_sensitivity)

    def repository_creation_kinds(self) -> frozenset[str]:
        """Kinds whose templates create new repositories."""
        return frozenset(k for k, t in self._templates.items() if t.creates_repository)

    def load_file(self, path: Path) -> int:
        """
        Register every template found in a JSON file.

        Returns:
            Number of templates registered
        """
        templates = load_templates_file(path)
        for template in templates:
            self.register(template)
        return len(templates)


def load_templates_file(path: Path) -> list[StrategyTemplate]:
    """Load StrategyTemplates from a JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    entries = data.get("templates", []) if isinstance(data, dict) else data
    return [StrategyTemplate.from_dict(entry) for entry in entries]


# =============================================================================
# Default Templates
# =============================================================================

API_INTEGRATION_TEMPLATE = StrategyTemplate(
    kind="api-integration",
    description="Add a third-party API in parallel to an existing integration",
    modes={
        StrategyMode.CONNECTED: ModeTemplate(
            steps=(
                "Inspect the hosting environment configuration through its API",
                "Clone the application repository for analysis",
                "Examine the existing API integration and its service pattern",
                "Design the new API service following the established pattern",
                "Implement parallel API calls with a consolidated response",
                "Add the new credentials to the hosted environment variables",
                "Create feature branch: feature/parallel-api-integration",
                "Implement error handling and fallbacks for both APIs",
                "Deploy to a preview environment for testing",
                "Validate the consolidated data display",
                "Open a pull request with documentation",
            ),
            reasoning=(
                "Live access allows direct environment management through the hosting API",
                "Current deployment configuration and API patterns can be examined",
                "The new API can be exercised against real endpoints",
                "Preview deployments give stakeholders something to validate",
                "The existing CI/CD pipeline is reused end to end",
            ),
            advantages=(
                "Direct environment variable management",
                "Real-time API documentation access and testing",
                "Immediate preview deployments for validation",
                "Access to live system metrics and performance data",
                "Integrated deployment pipeline with rollback",
            ),
            limitations=(
                "Requires a stable network connection",
                "Risk of accidental changes to the live environment",
                "Depends on external service availability",
            ),
            summary="Connected integration with hosting API access and real-time validation",
        ),
        StrategyMode.LOCAL: ModeTemplate(
            steps=(
                "Locate the application in the local workspace",
                "Analyze the existing API integration pattern",
                "Apply the singleton service pattern from the catalog",
                "Design the new API service following the established architecture",
                "Implement parallel processing with known async patterns",
                "Create a local environment configuration for the new credentials",
                "Add error handling and retry logic",
                "Create local branch: local/parallel-api-integration",
                "Test locally against mocked API responses",
                "Document the change for connected sync and deployment",
                "Prepare a sync package with all changes",
            ),
            reasoning=(
                "Local analysis reveals existing architectural conventions",
                "The catalog holds proven service implementations",
                "Working offline removes the risk of accidental live changes",
                "Local testing establishes code quality before sync",
                "Pattern-based implementation follows established practice",
            ),
            advantages=(
                "No risk of accidental production deployments",
                "Works without network access",
                "Thorough local testing and validation",
                "Reuses proven patterns from the catalog",
                "Independent development environment",
            ),
            limitations=(
                "Cannot verify the current hosted environment configuration",
                "No access to the live API for real-time testing",
                "Environment variables must be synced manually",
                "Cannot create preview deployments",
                "Requires a manual sync step once connected",
            ),
            summary="Pattern-based local development with mocked testing and sync preparation",
        ),
    },
)


REPOSITORY_CREATION_TEMPLATE = StrategyTemplate(
    kind="repository-creation",
    description="Duplicate a repository and replace a provider integration",
    high_sensitivity=True,
    creates_repository=True,
    modes={
        StrategyMode.CONNECTED: ModeTemplate(
            steps=(
                "Create the new repository through the source host API",
                "Clone the original repository for analysis",
                "Research the replacement provider's API documentation",
                "Map the integration points of the current provider",
                "Replace the current provider SDK throughout the codebase",
                "Remove the original branding (logos, colors, text)",
                "Update telephony configuration with the new API key",
                "Add support for multiple workflows",
                "Add multi-agent campaign management",
                "Create a new hosting project with a fresh environment",
                "Configure environment variables in the hosting dashboard",
                "Deploy to a preview environment for testing",
                "Validate phone numbers and the provider integration",
                "Promote to production after approval",
            ),
            reasoning=(
                "Live access allows repository creation and hosting project setup",
                "Provider documentation can be checked while integrating",
                "Telephony numbers can be validated directly",
                "The CI/CD pipeline is configured from the start",
                "Integration is tested against real endpoints",
            ),
            advantages=(
                "New repository with a clean history",
                "Real-time API documentation and testing",
                "Direct hosting project creation and configuration",
                "Immediate validation of telephony configuration",
                "Complete deployment pipeline from day one",
            ),
            limitations=(
                "Requires several external service authentications",
                "Multi-service integration testing is complex",
                "More moving parts raise the risk",
            ),
            summary="Connected repository creation with multi-service integration and live validation",
        ),
        StrategyMode.LOCAL: ModeTemplate(
            steps=(
                "Locate the original project in the local workspace",
                "Analyze the current provider integration architecture",
                "Apply API replacement patterns from the catalog",
                "Design the replacement integration on the established service pattern",
                "Catalog every branding element to remove",
                "Plan the branding replacement",
                "Implement the multi-workflow architecture",
                "Add multi-agent support following existing conventions",
                "Create the local project structure with all modifications",
                "Build a local test harness",
                "Document all changes and integration requirements",
                "Prepare a deployment package for connected sync",
            ),
            reasoning=(
                "Local analysis reveals the integration architecture",
                "The catalog holds API replacement strategies",
                "Working offline prevents accidental live changes",
                "Pattern-based implementation keeps the architecture consistent",
                "Documentation smooths the later connected phase",
            ),
            advantages=(
                "Complete isolation from live systems",
                "Analysis and planning before implementation",
                "Reuses proven architectural patterns",
                "Thorough local testing",
                "Detailed documentation for the deployment team",
            ),
            limitations=(
                "Cannot validate against the provider API in real time",
                "Cannot create the repository or hosting project",
                "Cannot validate telephony configuration",
                "Repository creation and deployment setup are manual",
                "Multi-service sync is complex",
            ),
            summary="Local development with pattern-based architecture and detailed sync preparation",
        ),
    },
)


DEFAULT_TEMPLATES: list[StrategyTemplate] = [
    API_INTEGRATION_TEMPLATE,
    REPOSITORY_CREATION_TEMPLATE,
]


def create_default_registry(extra_files: Optional[Iterable[Path]] = None) -> TemplateRegistry:
    """Create a registry with DEFAULT_TEMPLATES plus any JSON template files."""
    registry = TemplateRegistry(DEFAULT_TEMPLATES)
    for path in extra_files or []:
        count = registry.load_file(Path(path))
        logger.info("Loaded %d strategy template(s) from %s", count, path)
    return registry
