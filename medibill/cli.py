"""
Command-line interface for Medibill.

Provides commands for adjudicating bills against coverage schemes and
inspecting the status vocabulary and coverage catalog.
"""

import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import click
import numpy as np
import structlog
from pydantic import TypeAdapter, ValidationError

from medibill.config import ConfigurationError, load_config, validate_config
from medibill.config.loader import load_yaml
from medibill.core.adjudicator import CoverageAdjudicator
from medibill.core.serializers import serialize_to_json
from medibill.domain.billing import Bill
from medibill.domain.enums import BillingStatus, ClaimStatus
from medibill.domain.errors import MedibillError
from medibill.domain.items import BillableItemType
from medibill.generators.id_generator import IDGenerator
from medibill.insurance.provider import CatalogInsuranceProvider
from medibill.reference.catalog import load_coverage_catalog
from medibill.reference.registry import CodeRegistry
from medibill.store.json_store import JsonStore
from medibill.utils.logging import configure_logging

logger = structlog.get_logger()

_ITEM_ADAPTER = TypeAdapter(BillableItemType)


@click.group()
@click.option(
    "--config", "-c",
    type=click.Path(exists=True),
    help="Path to configuration file",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose output",
)
@click.option(
    "--json-logs",
    is_flag=True,
    help="Output logs as JSON",
)
@click.pass_context
def main(ctx, config, verbose, json_logs):
    """Medibill hospital billing and insurance adjudication."""
    ctx.ensure_object(dict)

    try:
        cfg = load_config(config)
    except (FileNotFoundError, ValidationError) as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)

    log_level = "DEBUG" if verbose else cfg.logging.level
    configure_logging(level=log_level, json_output=json_logs or cfg.logging.json_output)

    ctx.obj["config"] = cfg
    ctx.obj["log_level"] = log_level


@main.command()
def statuses():
    """List claim and bill statuses with their descriptions."""
    click.echo("Claim statuses:")
    for status in ClaimStatus:
        click.echo(f"  {status.value:<22} {status.description}")
    click.echo("\nBill statuses:")
    for status in BillingStatus:
        click.echo(f"  {status.value:<22} {status.description}")


@main.command()
@click.pass_context
def schemes(ctx):
    """List coverage schemes in the configured catalog."""
    config = ctx.obj["config"]
    try:
        catalog = load_coverage_catalog(config.insurance.catalog_path)
    except (FileNotFoundError, ValueError, MedibillError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    for name, coverage in catalog.items():
        benefits = ", ".join(sorted(b.value for b in coverage.covered_benefits))
        click.echo(f"{name}")
        click.echo(f"  Deductible: {coverage.deductible_amount}")
        click.echo(f"  Coinsurance: {coverage.coinsurance_rate}")
        click.echo(f"  Covers: {benefits}")


@main.command()
@click.pass_context
def validate(ctx):
    """Validate configuration and the coverage catalog."""
    config = ctx.obj["config"]
    try:
        warnings = validate_config(config)
    except ConfigurationError as e:
        click.echo(str(e), err=True)
        sys.exit(1)

    for warning in warnings:
        click.echo(f"Warning: {warning}", err=True)
    click.echo("Configuration is valid")


@main.command()
@click.argument("bill_file", type=click.Path(exists=True, path_type=Path))
@click.option("--scheme", "-s", default=None, help="Coverage scheme name (default: from config)")
@click.option("--codes", type=click.Path(exists=True, path_type=Path), default=None,
              help="Code registry file for items given only by code")
@click.option("--inpatient/--outpatient", default=None, help="Override the bill's episode type")
@click.option(
    "--date",
    "as_of",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Evaluation date (format: YYYY-MM-DD, default: today)",
)
@click.option("--save", is_flag=True, help="Save the bill and claim to the data directory")
@click.pass_context
def adjudicate(ctx, bill_file, scheme, codes, inpatient, as_of, save):
    """Adjudicate a bill described in a YAML or JSON file.

    The file lists the patient and line items:

    \b
    patient_id: P0001
    inpatient: true
    items:
      - kind: ward_stay
        ward_class: General Class B2
        days: 3
      - code: E66.01
        quantity: 1
    """
    config = ctx.obj["config"]
    now = as_of or datetime.now()

    try:
        bill_data = load_yaml(bill_file)
        catalog = load_coverage_catalog(config.insurance.catalog_path)
        scheme_name = scheme or bill_data.get("scheme") or config.insurance.default_scheme
        if scheme_name is None or scheme_name not in catalog:
            raise click.UsageError(
                f"Unknown coverage scheme {scheme_name!r}; available: {', '.join(sorted(catalog))}"
            )
        registry = CodeRegistry.load(codes) if codes else CodeRegistry()

        id_gen = IDGenerator(np.random.default_rng(config.seed), worker_id=config.worker_id)
        provider = CatalogInsuranceProvider(
            config.insurance.provider_name,
            id_gen,
            policy_prefix=config.insurance.policy_prefix,
            policy_term_days=config.insurance.policy_term_days,
        )
        adjudicator = CoverageAdjudicator(
            id_gen,
            usage_tracker=provider.usage_tracker,
            clock=lambda: now,
            apply_accident_benefit=config.adjudication.apply_accident_benefit,
        )

        patient_id = str(bill_data["patient_id"])
        bill = Bill(
            bill_id=id_gen.generate_bill_id(now.date()),
            patient_id=patient_id,
            bill_date=now,
            is_inpatient=bool(bill_data.get("inpatient", False)) if inpatient is None else inpatient,
            is_emergency=bool(bill_data.get("emergency", False)),
            source_reference=bill_data.get("reference"),
        )
        for entry in bill_data.get("items", []):
            item, quantity = _resolve_item(entry, registry)
            bill.add_line_item(item, quantity)

        bill.insurance_policy = provider.enroll(patient_id, catalog[scheme_name], start=now)
        bill.submit_for_processing(config.billing.payment_due_days)
        result = bill.calculate_insurance_coverage(adjudicator, now=now)

        claims = []
        if result.approved:
            claim = result.claim
            provider.submit_claim(patient_id, claim, now)
            if provider.process_claim(patient_id, claim, now):
                bill.approve_insurance(claim.approved_amount)
            else:
                bill.reject_insurance()
            claims.append(claim)

        if save:
            store = JsonStore(config.storage.data_dir)
            store.upsert_bill(bill)
            for claim in claims:
                store.upsert_claim(claim)

    except (KeyError, ValueError, FileNotFoundError, MedibillError) as e:
        logger.error("adjudication_failed", error=str(e))
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(serialize_to_json(_report(bill, result)))


def _resolve_item(entry: dict[str, Any], registry: CodeRegistry) -> tuple[BillableItemType, int]:
    entry = dict(entry)
    quantity = int(entry.pop("quantity", 1))
    if "kind" in entry:
        return _ITEM_ADAPTER.validate_python(entry), quantity
    return registry.lookup(str(entry["code"])), quantity


def _report(bill: Bill, result) -> dict[str, Any]:
    report: dict[str, Any] = {
        "bill_id": bill.bill_id,
        "bill_status": bill.status,
        "grand_total": bill.grand_total,
        "category_totals": bill.category_totals,
        "approved": result.approved,
        "payable_amount": result.payable_amount,
        "patient_responsibility": bill.patient_responsibility,
    }
    if result.approved:
        report.update(
            claim=result.claim.summary(),
            claim_status=result.claim.status,
            deductible_applied=result.deductible_applied,
            coinsurance_amount=result.coinsurance_amount,
            accident_benefit=result.accident_benefit,
            limits_applied=result.limits_applied,
        )
    else:
        report["denial_reason"] = result.denial_reason
    if result.excluded_items:
        report["excluded_items"] = result.excluded_items
    return report


if __name__ == "__main__":
    main()
