"""
Command handlers for the soaproxy CLI.

This module contains command handlers for:
- analyze: eligibility report for the element classes of tracked containers
- transform: patched file and proxy headers, written or printed
- config: show or initialize the configuration
"""

import json
import sys

from soaproxy.api import SoaProxy
from soaproxy.cli.rich_output import get_rich_output
from soaproxy.config import SoaProxyConfig
from soaproxy.discovery import TransformationResult


def _print_diagnostics(result: TransformationResult) -> None:
    output = get_rich_output()
    for diagnostic in result.diagnostics.diagnostics:
        if diagnostic.kind.value in ("not_found", "missing_anchor"):
            output.print_warning(str(diagnostic))


def print_class_table(result: TransformationResult, title: str) -> None:
    output = get_rich_output()
    table = output.create_table(title, ["Class", "Kind", "State", "Definitions", "Header"])
    for report in result.reports:
        output.add_table_row(
            table,
            report.name,
            report.kind or "-",
            report.state,
            report.definitions,
            report.header or "-",
        )
    output.print_table(table)


def cmd_analyze(args, soaproxy: SoaProxy) -> None:
    """Handle analyze command."""
    result = soaproxy.analyze(args.path, containers=args.containers)

    if args.format == "json":
        print(json.dumps(result.to_dict(), indent=2, default=str))
        return

    output = get_rich_output()
    output.print_header("soaproxy analysis", result.source_path)
    if not result.reports:
        output.print_info("No element classes of tracked containers found")
        return

    print_class_table(result, "Proxy class candidates")
    for report in result.reports:
        if report.reasons:
            tree = output.create_tree(f"{report.name} rejected")
            for reason in report.reasons:
                output.add_tree_node(tree, reason)
            output.print_tree(tree)
        if args.verbose and report.details:
            output.print_section(report.name)
            output.print_text(report.details)
    _print_diagnostics(result)


def cmd_transform(args, soaproxy: SoaProxy) -> None:
    """Handle transform command."""
    result = soaproxy.transform(args.path, containers=args.containers)
    output = get_rich_output()

    if args.format == "json":
        payload = result.to_dict()
        if args.dry_run:
            payload["main_file_text"] = result.main_file_text
            payload["proxy_header_texts"] = dict(result.proxy_headers)
        print(json.dumps(payload, indent=2, default=str))
        if not args.dry_run:
            soaproxy.write(result, args.output)
        return

    print_class_table(result, "Generated proxies")
    _print_diagnostics(result)

    if not result.changed:
        output.print_info("No proxy class candidates, nothing to do")
        return

    if args.dry_run:
        output.print_code(result.main_file_text, "cpp", title=result.source_path)
        for header_name, header_text in result.proxy_headers.items():
            output.print_code(header_text, "cpp", title=header_name)
        return

    for name, path in soaproxy.write(result, args.output).items():
        output.print_success(f"Wrote {name}: {path}")


def cmd_config(args) -> None:
    """Handle config command."""
    output = get_rich_output()
    if args.config_action == "show":
        config = SoaProxyConfig.load(getattr(args, "config", None))
        if args.format == "text":
            output.print_text(config.get_config_summary())
        else:
            print(json.dumps(config.to_dict(), indent=2))

    elif args.config_action == "init":
        config = SoaProxyConfig.default()
        config.to_file(args.path, "json" if args.format == "json" else "yaml")
        output.print_success(f"Default configuration file created at {args.path}")
        print("Edit the file to customize your soaproxy settings.", file=sys.stderr)
