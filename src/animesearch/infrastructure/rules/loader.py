from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from animesearch.domain.rules import (
    CompileError,
    RuleLoadError,
    RuleValidationError,
    SiteRule,
)
from animesearch.infrastructure.rules.adapters import to_site_rule
from animesearch.infrastructure.rules.validation_schema import RuleDefinitionPydantic

log = structlog.get_logger(__name__)

INDEX_FILE = "index.json"


def is_rule_file(path: Path) -> bool:
    """``*.json`` files of a rule directory, except the repository index."""
    return path.is_file() and path.suffix.lower() == ".json" and path.name != INDEX_FILE


def parse_rule(data: Any) -> SiteRule:
    """Validate a decoded rule document and admit it.

    Raises:
        RuleValidationError: structural problem in the document.
        CompileError: a selector cannot be compiled.
    """
    if not isinstance(data, dict):
        raise RuleValidationError("rule root must be a JSON object")
    try:
        pydantic_model = RuleDefinitionPydantic.model_validate(data)
    except ValidationError as e:
        raise RuleValidationError(str(e)) from e
    return to_site_rule(pydantic_model)


def load_rule_file(path: Path) -> SiteRule:
    """Load, validate and compile one Kazumi JSON rule file."""
    try:
        raw = path.read_text(encoding="utf-8-sig")
        data = json.loads(raw)
        return parse_rule(data)
    except (OSError, UnicodeDecodeError) as e:
        log.error(
            "rule_load_failed",
            rule_file=str(path),
            error_type=type(e).__name__,
            error_message=str(e),
        )
        raise RuleLoadError(str(e)) from e
    except json.JSONDecodeError as e:
        log.error(
            "rule_validation_failed",
            rule_file=str(path),
            error_type=type(e).__name__,
            error_message=str(e),
        )
        raise RuleValidationError(str(e)) from e
    except RuleValidationError as e:
        log.error(
            "rule_validation_failed",
            rule_file=str(path),
            error_type="ValidationError",
            error_message=str(e),
        )
        raise
    except CompileError as e:
        log.error(
            "rule_compile_failed",
            rule_file=str(path),
            xpath=e.xpath,
            reason=e.reason,
        )
        raise
