#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Purity CLI - clean and validate legal text from the command line

Usage:
    purity clean contract.txt
    echo "محامي Pro V2" | purity clean -
    purity validate translation.txt --lang fr
    purity rules export rules.json
    purity rules import rules.json
    purity regressions
    purity --rules rules.json clean contract.txt
"""

import sys
import json
import argparse
from pathlib import Path

from config.settings import get_settings
from core.cleaner import SpecializedPatternCleaner
from core.errors import RuleConfigurationError
from core.models import Language
from core.purity import PurityPolicy, PurityValidator
from core.rules import PatternRuleRegistry, get_rule_registry
from core.terminology import LegalTerminologyStore


def read_input(source: str) -> str:
    """Read text from a file path, or stdin for '-'"""
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def load_registry(args) -> PatternRuleRegistry:
    """Process registry with the saved snapshot, then --rules, applied on top"""
    registry = get_rule_registry()
    saved = get_settings().rules_path()
    if saved.exists():
        registry.import_rules(saved.read_text(encoding="utf-8"))
    if getattr(args, "rules", None):
        registry.import_rules(Path(args.rules).read_text(encoding="utf-8"))
    return registry


def cmd_clean(args):
    """Clean text and print the result"""
    try:
        text = read_input(args.source)
    except OSError as e:
        print(f"❌ Cannot read input: {e}", file=sys.stderr)
        return 1

    report = SpecializedPatternCleaner(load_registry(args)).clean(text)
    print(report.cleaned_text)

    if args.report:
        print(json.dumps(report.summary(), ensure_ascii=False, indent=2), file=sys.stderr)
    if not report.is_safe:
        print(f"⚠️  Reported patterns survived cleaning: {', '.join(report.remaining_regressions)}",
              file=sys.stderr)
        return 2
    return 0


def cmd_validate(args):
    """Score purity; exit status 0 only for pure text"""
    try:
        text = read_input(args.source)
    except OSError as e:
        print(f"❌ Cannot read input: {e}", file=sys.stderr)
        return 1

    validator = PurityValidator(PurityPolicy(), LegalTerminologyStore())
    verdict = validator.validate(text, Language(args.lang))

    if args.json:
        print(json.dumps(verdict.to_dict(), ensure_ascii=False, indent=2))
    else:
        score = verdict.purity_score
        print(f"Purity:        {score.overall}")
        print(f"  script:      {score.script_purity}")
        print(f"  terminology: {score.terminology_consistency}")
        print(f"  encoding:    {score.encoding_integrity}")
        print(f"  coherence:   {score.contextual_coherence}")
        print(f"  ui:          {score.ui_elements_removed}")
        print(f"Verdict:       {'✅ pure' if verdict.is_pure else '❌ impure'}")
        for violation in verdict.violations:
            print(f"  - [{violation.severity.value}] {violation.type}: {violation.text!r}")
            print(f"      {violation.suggested_fix}")

    return 0 if verdict.is_pure else 1


def cmd_rules(args):
    """Export or import the cleaning rule snapshot"""
    registry = load_registry(args)
    path = Path(args.path)

    if args.action == "export":
        path.write_text(registry.export_rules(), encoding="utf-8")
        stats = registry.get_statistics()
        print(f"✅ Exported {stats['total_rules']} rules and "
              f"{stats['regression_patterns']} regression patterns to {path}")
        return 0

    try:
        count = registry.import_rules(path.read_text(encoding="utf-8"), replace=not args.merge)
    except (OSError, RuleConfigurationError) as e:
        print(f"❌ Import failed: {e}", file=sys.stderr)
        return 1

    saved = get_settings().rules_path()
    saved.parent.mkdir(parents=True, exist_ok=True)
    saved.write_text(registry.export_rules(), encoding="utf-8")
    print(f"✅ Imported {count} rules from {path}, saved to {saved}")
    return 0


def cmd_regressions(args):
    """Check that every regression pattern is still cleaned"""
    registry = load_registry(args)
    failures = SpecializedPatternCleaner(registry).validate_regressions()
    total = len(registry.regression_patterns())

    if not failures:
        print(f"✅ All {total} regression patterns are cleaned")
        return 0

    print(f"❌ {len(failures)}/{total} regression patterns survive cleaning:")
    for pattern, remaining in failures.items():
        print(f"  - {pattern!r}: {', '.join(remaining)}")
    return 1


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="purity",
        description="Cleaning and purity validation for Arabic/French legal text",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--rules", help="Rule snapshot to load before running the command")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Clean command
    clean_parser = subparsers.add_parser("clean", help="Remove UI and cross-script contamination")
    clean_parser.add_argument("source", help="Input file, or - for stdin")
    clean_parser.add_argument("--report", action="store_true", help="Print the cleaning report to stderr")

    # Validate command
    validate_parser = subparsers.add_parser("validate", help="Score purity of a translation")
    validate_parser.add_argument("source", help="Input file, or - for stdin")
    validate_parser.add_argument("--lang", required=True, choices=[l.value for l in Language],
                                 help="Language the text is written in")
    validate_parser.add_argument("--json", action="store_true", help="Print the verdict as JSON")

    # Rules command
    rules_parser = subparsers.add_parser("rules", help="Export or import cleaning rules")
    rules_parser.add_argument("action", choices=["export", "import"])
    rules_parser.add_argument("path", help="Snapshot file")
    rules_parser.add_argument("--merge", action="store_true", help="Keep current rules when importing")

    # Regressions command
    subparsers.add_parser("regressions", help="Run the regression set through the cleaner")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    commands = {
        "clean": cmd_clean,
        "validate": cmd_validate,
        "rules": cmd_rules,
        "regressions": cmd_regressions,
    }

    try:
        return commands[args.command](args)
    except (OSError, RuleConfigurationError) as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
