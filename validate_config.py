#!/usr/bin/env python3
"""
Configuration Validation Tool

Validates YAML problem files for the seating optimizer and provides
detailed feedback about feasibility and potential issues.
"""

import sys
import argparse
from pathlib import Path
from typing import Any, Dict

sys.path.append(str(Path(__file__).parent))

from seating.config_loader import load_config
from seating.errors import ConfigurationError, UnknownRotationPolicy
from seating.validation import ProblemValidator
from multiday.rotation import parse_policy


def validate_comprehensive(config_path: str) -> Dict[str, Any]:
    """Problem validation plus the multi-day rotation policy check"""
    result = ProblemValidator().validate_file(config_path)

    try:
        config = load_config(config_path)
    except ConfigurationError:
        return result

    section = config.get('multi_day') or {}
    if 'policy' in section:
        try:
            parse_policy(section['policy'])
        except UnknownRotationPolicy as e:
            result['errors'].append(e.message)
            result['issues'].append({'type': e.kind, 'message': e.message})
            result['valid'] = False
    return result


def main():
    """Main validation function"""
    parser = argparse.ArgumentParser(
        description="Validate YAML configuration files for the seating optimizer",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        'config_file',
        nargs='?',
        default='config.yaml',
        help='Configuration file to validate (default: config.yaml)'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Show detailed validation information'
    )

    parser.add_argument(
        '--warnings-only', '-w',
        action='store_true',
        help='Show only warnings and errors (no recommendations)'
    )

    args = parser.parse_args()

    result = validate_comprehensive(args.config_file)

    print("=" * 60)
    print("CONFIGURATION VALIDATION REPORT")
    print("=" * 60)
    print(f"File: {args.config_file}")
    print(f"Status: {'✅ VALID' if result['valid'] else '❌ INVALID'}")
    print()

    if result['errors']:
        print("🚨 ERRORS:")
        for error in result['errors']:
            print(f"  • {error}")
        print()

    if result['warnings']:
        print("⚠️  WARNINGS:")
        for warning in result['warnings']:
            print(f"  • {warning}")
        print()

    if result['recommendations'] and not args.warnings_only:
        print("💡 RECOMMENDATIONS:")
        for rec in result['recommendations']:
            print(f"  • {rec}")
        print()

    summary = result['summary']
    if summary and args.verbose:
        print("📊 SUMMARY:")
        for key, value in summary.items():
            print(f"  {key}: {value}")
        print()
    elif summary:
        print(f"Participants: {summary['participants']}, Tables: {summary['tables']} x "
              f"{summary['capacity']}, Utilization: {summary['utilization']}%")

    print("=" * 60)

    sys.exit(0 if result['valid'] else 1)


if __name__ == "__main__":
    main()
