"""
Effect Catalog Loader

This module provides:
- EffectCatalog: the validated, read-only table of item/quality/power effects
- Pydantic validation of every JSON table with per-file error reporting
- Name matching (normalized exact key first, then declared patterns)
- Offline catalog audit (validate_catalog) for content authors

The catalog is a plain object built once by whoever composes the engine
(see chummer_rules.context); there is no module-level instance.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Union

from pydantic import ValidationError

from .complex_effects import COMPLEX_EFFECT_HANDLERS
from .models import CatalogSection, EffectDefinition, EffectEntry, MatchMode

logger = logging.getLogger("chummer_rules.rules.data_loader")

# file name -> (section, required)
CATALOG_TABLES: Dict[str, tuple] = {
    "augmentations.json": (CatalogSection.AUGMENTATION, True),
    "qualities.json": (CatalogSection.QUALITY, True),
    "adept_powers.json": (CatalogSection.ADEPT_POWER, True),
    "gear.json": (CatalogSection.GEAR, False),
}


class CatalogError(ValueError):
    """Raised when an effect table is missing, unreadable or malformed."""


class CatalogIssue(NamedTuple):
    severity: str  # "error" or "warning"
    entry_key: str
    message: str


def normalize_name(name: str) -> str:
    """Lower-cases and collapses whitespace so names compare predictably."""
    return " ".join(name.lower().split())


def matches_pattern(
    name: str,
    patterns: Union[str, Iterable[str]],
    mode: MatchMode = MatchMode.CONTAINS,
) -> bool:
    """
    Checks whether an item name matches any of the given patterns.

    Args:
        name: The item/quality/power name as entered on the character.
        patterns: One pattern or several; compared case-insensitively.
        mode: CONTAINS for substring containment, EXACT for whole-name equality.
    """
    lower_name = normalize_name(name)
    if isinstance(patterns, str):
        patterns = [patterns]
    for pattern in patterns:
        pattern = normalize_name(pattern)
        if mode == MatchMode.EXACT:
            if lower_name == pattern:
                return True
        elif pattern in lower_name:
            return True
    return False


def calculate_effect_value(effect: EffectDefinition, rating: int) -> float:
    """Fixed value if the definition has one, otherwise rating x multiplier."""
    if effect.fixed_value is not None:
        return effect.fixed_value
    multiplier = 1 if effect.multiplier is None else effect.multiplier
    return rating * multiplier


class EffectCatalog:
    """Validated, immutable effect tables keyed by catalog section.

    Rows keep their declaration order; the first matching row wins.
    """

    def __init__(self, entries: Optional[Iterable[EffectEntry]] = None):
        self._entries: Dict[CatalogSection, List[EffectEntry]] = {section: [] for section in CatalogSection}
        self._by_key: Dict[CatalogSection, Dict[str, EffectEntry]] = {section: {} for section in CatalogSection}
        self.load_errors: List[Dict[str, str]] = []
        self.source_directory: Optional[Path] = None

        for entry in entries or []:
            self._add_entry(entry)

    def _add_entry(self, entry: EffectEntry) -> None:
        self._entries[entry.applies_to].append(entry)
        # Duplicate keys are reported by validate_catalog; the first row stays.
        self._by_key[entry.applies_to].setdefault(entry.key, entry)

    @classmethod
    def from_directory(cls, data_directory: Union[str, Path]) -> "EffectCatalog":
        """Load and validate every catalog table found in `data_directory`.

        Raises:
            CatalogError: If a required table is missing, or any table holds
                invalid JSON or rows that do not match the EffectEntry schema.
        """
        data_directory = Path(data_directory)
        catalog = cls()
        catalog.source_directory = data_directory

        logger.info(f"Loading effect catalog from {data_directory}")
        for filename, (section, required) in CATALOG_TABLES.items():
            raw = catalog._load_json_file(data_directory / filename, required)
            if raw is None:
                continue
            for entry in catalog._parse_table(filename, section, raw):
                catalog._add_entry(entry)

        summary = catalog.get_summary()
        logger.info(f"Effect catalog loaded: {summary}")
        if catalog.load_errors:
            logger.warning(f"Loaded with {len(catalog.load_errors)} warnings:")
            for error in catalog.load_errors:
                logger.warning(f"  - {error['file']}: {error['message']}")
        return catalog

    def _load_json_file(self, filepath: Path, required: bool) -> Optional[Any]:
        try:
            with open(filepath, "r", encoding="utf-8") as f:
                data = json.load(f)
            logger.debug(f"Loaded: {filepath.name}")
            return data
        except FileNotFoundError:
            if required:
                logger.error(f"Effect table not found: {filepath}")
                raise CatalogError(f"Required effect table '{filepath.name}' not found at {filepath}")
            logger.warning(f"Optional effect table not found: {filepath.name}")
            self.load_errors.append({
                "file": filepath.name,
                "error_type": "FileNotFoundError",
                "message": "optional table missing",
            })
            return None
        except (UnicodeDecodeError, OSError) as e:
            logger.error(f"Cannot read {filepath.name}: {e}")
            raise CatalogError(f"Cannot read {filepath.name}: {e}") from e
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in {filepath.name}: {e}")
            raise CatalogError(
                f"Invalid JSON in {filepath.name} (line {e.lineno}, column {e.colno}): {e.msg}"
            ) from e

    def _parse_table(self, filename: str, section: CatalogSection, raw: Any) -> List[EffectEntry]:
        if not isinstance(raw, dict) or not isinstance(raw.get("entries"), list):
            raise CatalogError(f"{filename} must be an object with an 'entries' list")

        declared = raw.get("section", section.value)
        if declared != section.value:
            raise CatalogError(f"{filename} declares section '{declared}', expected '{section.value}'")

        entries = []
        for index, row in enumerate(raw["entries"]):
            if not isinstance(row, dict):
                raise CatalogError(f"{filename} entry #{index} is not an object")
            try:
                entries.append(EffectEntry(**{**row, "applies_to": section}))
            except ValidationError as e:
                key = row.get("key", f"#{index}")
                logger.error(f"Schema mismatch in {filename} entry '{key}': {e}")
                raise CatalogError(f"Data structure mismatch in {filename} entry '{key}': {e}") from e
        return entries

    def find(self, name: str, applies_to: CatalogSection) -> Optional[EffectEntry]:
        """
        Resolve a name to its catalog row.

        The normalized name is first looked up as an exact key; failing that,
        rows are tried in declaration order and the first match wins.
        """
        normalized = normalize_name(name)
        entry = self._by_key[applies_to].get(normalized)
        if entry is not None:
            return entry
        for entry in self._entries[applies_to]:
            if matches_pattern(normalized, entry.patterns, entry.match):
                return entry
        return None

    def entries(self, applies_to: Optional[CatalogSection] = None) -> List[EffectEntry]:
        if applies_to is not None:
            return list(self._entries[applies_to])
        return [entry for section in CatalogSection for entry in self._entries[section]]

    def get_summary(self) -> Dict[str, int]:
        summary = {section.value: len(rows) for section, rows in self._entries.items()}
        summary["load_errors"] = len(self.load_errors)
        return summary


def load_effect_catalog(settings) -> EffectCatalog:
    """Builds the catalog from the directory named in the engine settings."""
    return EffectCatalog.from_directory(settings.data_dir)


def validate_catalog(catalog: EffectCatalog) -> List[CatalogIssue]:
    """
    Audit a catalog for authoring mistakes.

    Checks for rows that define neither effects nor a handler (or both),
    handlers that are not registered, duplicate keys within a section, and
    patterns that can never win because an earlier row already matches them.
    Meant for offline use (tools/audit_effect_catalog.py, tests), not for the
    per-character resolve path.
    """
    issues: List[CatalogIssue] = []

    for section in CatalogSection:
        seen_keys: Dict[str, EffectEntry] = {}
        earlier: List[EffectEntry] = []

        for entry in catalog.entries(section):
            if not entry.effects and not entry.handler:
                issues.append(CatalogIssue("error", entry.key, "row has neither effects nor a handler"))
            if entry.effects and entry.handler:
                issues.append(CatalogIssue("error", entry.key, "row defines both static effects and a handler"))
            if entry.handler and entry.handler not in COMPLEX_EFFECT_HANDLERS:
                issues.append(CatalogIssue("error", entry.key, f"unknown handler '{entry.handler}'"))

            if entry.key in seen_keys:
                issues.append(CatalogIssue("error", entry.key, f"duplicate key in section '{section.value}'"))
            seen_keys.setdefault(entry.key, entry)

            suffixes = [effect.id_suffix for effect in entry.effects]
            if len(suffixes) != len(set(suffixes)):
                issues.append(CatalogIssue("error", entry.key, "effect id_suffix values are not unique"))

            for pattern in entry.patterns:
                for previous in earlier:
                    if matches_pattern(pattern, previous.patterns, previous.match):
                        issues.append(CatalogIssue(
                            "warning",
                            entry.key,
                            f"pattern '{pattern}' is shadowed by earlier row '{previous.key}'",
                        ))
                        break
            earlier.append(entry)

    for issue in issues:
        log = logger.error if issue.severity == "error" else logger.warning
        log(f"Catalog issue [{issue.entry_key}]: {issue.message}")
    return issues
