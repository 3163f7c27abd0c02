import sys
from pathlib import Path

from chummer_rules.modules.rules_pkg.data_loader import CatalogError, EffectCatalog, validate_catalog
from chummer_rules.settings import DEFAULT_DATA_DIR


def audit_effect_catalog(data_dir=DEFAULT_DATA_DIR):
    """
    Loads the effect catalog and reports authoring problems.

    Reports rows with no effects or handler, unknown handlers, duplicate keys
    and patterns shadowed by earlier rows. Returns the number of errors
    (warnings do not count).
    """
    print(f"Auditing effect catalog in {data_dir}...")
    try:
        catalog = EffectCatalog.from_directory(data_dir)
    except CatalogError as e:
        print(f"Error: {e}")
        return 1

    for section, count in catalog.get_summary().items():
        print(f"  {section}: {count}")

    issues = validate_catalog(catalog)
    errors = [issue for issue in issues if issue.severity == "error"]
    warnings = [issue for issue in issues if issue.severity == "warning"]

    print(f"Errors: {len(errors)}")
    print(f"Warnings: {len(warnings)}")
    for issue in issues:
        print(f"- [{issue.severity}] {issue.entry_key}: {issue.message}")
    return len(errors)


if __name__ == "__main__":
    target = Path(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_DATA_DIR
    sys.exit(1 if audit_effect_catalog(target) else 0)
