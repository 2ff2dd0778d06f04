#!/usr/bin/env python3
"""
Rent-Cycle Reconciliation Engine - Main CLI Entrypoint

This script orchestrates a reconciliation pass for one or more tenants:
1. Loads engine, location and tenant settings
2. Converts tenant and payment records into typed models
3. Builds the cycle ledger and detects unsettled cycles (gaps)
4. Orders gaps and picks the recommended one, or suggests the next cycle
5. Summarizes pending and partial dues and mid-cycle transfer differences
6. Generates JSON and CSV reports

Usage:
  python -m rentcycle.reconciliation --tenancy TENANTS.json --payments PAYMENTS.json [--as-of YYYY-MM-DD]

Examples:
  python -m rentcycle.reconciliation --tenancy tenant_12.json --payments payments_12.json
  python -m rentcycle.reconciliation --tenancy tenants.json --payments payments.json --as-of 2024-02-05 --verbose
"""

import os
import sys
import argparse
import logging
import datetime
from typing import Dict, Any, List, Mapping, Optional, Sequence, Union

from rentcycle.models import Payment, TenancyContext, ReconciliationWarning
from rentcycle.exceptions import InvalidTenancyError
from rentcycle.settings_loader import load_engine_settings, merge_settings
from rentcycle.ingestion import parse_date, parse_tenancy, parse_payments
from rentcycle.gap_detector import build_cycle_ledger, gaps_from_ledger, ledger_totals
from rentcycle.gap_prioritizer import apply_priorities, prioritize
from rentcycle.next_cycle import suggest_next
from rentcycle.rent_status import summarize
from rentcycle.calculations.transfer_difference import transfer_differences
from rentcycle.report_generator import generate_reports
from rentcycle.utils.helpers import load_json

logger = logging.getLogger(__name__)

ACTION_PAY_GAP = "PAY_GAP"
ACTION_NEXT_CYCLE = "START_NEXT_CYCLE"
ACTION_NONE = "NONE"


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Configure root logging for command-line runs.

    Args:
        level: Log level name
        log_file: Optional file to log to in addition to stdout
    """
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True
    )


def reconcile_tenancy(
    tenancy: TenancyContext,
    payments: Sequence[Payment],
    as_of: datetime.date,
    priorities: Optional[Mapping[Union[str, int], float]] = None,
    warnings: Optional[List[ReconciliationWarning]] = None
) -> Dict[str, Any]:
    """
    Run a full reconciliation pass for one tenancy.

    Args:
        tenancy: Tenancy context
        payments: Payment history (a consistent snapshot)
        as_of: Reconciliation date
        priorities: Optional priority hints keyed by gap_id or cycle_id
        warnings: Warnings already raised while ingesting the records

    Returns:
        Dictionary with the prioritized gaps, recommended gap, next cycle
        suggestion, summary, per-cycle ledger, transfer differences and
        warnings
    """
    warnings = list(warnings or [])

    ledger = build_cycle_ledger(tenancy, payments, as_of, warnings)
    gaps = prioritize(apply_priorities(gaps_from_ledger(ledger), priorities))
    recommended = gaps[0] if gaps else None

    next_cycle = None
    next_cycle_id = None
    if not gaps and tenancy.join_date:
        next_cycle, next_cycle_id = suggest_next(tenancy, payments, as_of, warnings)

    if recommended is not None:
        action = ACTION_PAY_GAP
    elif next_cycle is not None:
        action = ACTION_NEXT_CYCLE
    else:
        action = ACTION_NONE

    summary = summarize(gaps, payments)
    transfers = transfer_differences(tenancy, as_of, warnings)
    expected_total, paid_total = ledger_totals(ledger)

    logger.info(
        f"Tenant {tenancy.tenant_id} reconciliation complete: {summary.label}, "
        f"{len(gaps)} gaps, rent due {summary.rent_due}, {len(warnings)} warnings"
    )

    return {
        'tenant_id': tenancy.tenant_id,
        'as_of': as_of,
        'policy': tenancy.policy,
        'join_date': tenancy.join_date,
        'gaps': gaps,
        'recommended_gap': recommended,
        'recommended_action': action,
        'next_cycle': next_cycle,
        'next_cycle_id': next_cycle_id,
        'summary': summary,
        'ledger': ledger,
        'expected_total': expected_total,
        'paid_total': paid_total,
        'transfer_differences': transfers,
        'warnings': warnings
    }


def reconcile_records(
    tenant_record: Dict[str, Any],
    payment_records: Sequence[Dict[str, Any]],
    as_of: datetime.date,
    settings: Optional[Dict[str, Any]] = None,
    priorities: Optional[Mapping[Union[str, int], float]] = None
) -> Dict[str, Any]:
    """
    Reconcile a tenant straight from backend records.

    Raises:
        InvalidTenancyError: If the tenant record cannot be reconciled
    """
    tenancy = parse_tenancy(tenant_record, settings)
    payments, warnings = parse_payments(payment_records)
    return reconcile_tenancy(tenancy, payments, as_of, priorities, warnings)


def unwrap_records(payload: Any) -> List[Dict[str, Any]]:
    """
    Extract a list of records from an API payload.

    Accepts a bare list, a single object, or the {"data": ...} envelope
    (possibly nested twice) returned by the backend.
    """
    for _ in range(2):
        if isinstance(payload, dict) and 'data' in payload:
            payload = payload['data']

    if isinstance(payload, list):
        return [r for r in payload if isinstance(r, dict)]
    if isinstance(payload, dict):
        return [payload]
    return []


def payments_for_tenant(
    payment_records: Sequence[Dict[str, Any]],
    tenant_record: Dict[str, Any],
    single_tenant: bool
) -> List[Dict[str, Any]]:
    """Select the payment records belonging to a tenant."""
    if single_tenant:
        return list(payment_records)

    tenant_key = str(tenant_record.get('s_no', tenant_record.get('tenant_id')))
    return [p for p in payment_records if str(p.get('tenant_id')) == tenant_key]


def parse_arguments(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Rent-cycle reconciliation')

    parser.add_argument('--tenancy', required=True,
                        help='JSON file with a tenant record or a list of tenant records')
    parser.add_argument('--payments', required=True,
                        help='JSON file with payment records')
    parser.add_argument('--as-of', dest='as_of',
                        help='Reconciliation date in YYYY-MM-DD format (default: today)')
    parser.add_argument('--settings',
                        help='Settings JSON file (default: $RENTCYCLE_SETTINGS_PATH)')
    parser.add_argument('--priorities',
                        help='JSON object of priority hints keyed by gap_id or cycle_id')
    parser.add_argument('--output-dir', dest='output_dir',
                        help='Directory for generated reports')
    parser.add_argument('--no-reports', dest='no_reports', action='store_true',
                        help='Skip writing report files')
    parser.add_argument('--verbose', action='store_true',
                        help='Enable verbose logging')

    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the reconciliation process."""
    args = parse_arguments(argv)

    engine_settings = load_engine_settings(args.settings)
    base_settings = engine_settings.get('settings', {})

    configure_logging(
        'DEBUG' if args.verbose else base_settings.get('log_level', 'INFO'),
        base_settings.get('log_file') or None
    )

    try:
        as_of = parse_date(args.as_of) or datetime.date.today()
        tenant_records = unwrap_records(load_json(args.tenancy))
        payment_records = unwrap_records(load_json(args.payments))
        priorities = load_json(args.priorities) if args.priorities else None
    except (OSError, ValueError) as e:
        logger.error(f"Could not read input: {str(e)}")
        print(f"\nERROR: {str(e)}")
        return 1

    start_time = datetime.datetime.now()
    logger.info(f"Starting reconciliation of {len(tenant_records)} tenants as of {as_of}")

    results = []
    failures = []
    single_tenant = len(tenant_records) == 1

    for tenant_record in tenant_records:
        settings = merge_settings(
            engine_settings,
            tenant_record.get('pg_id'),
            tenant_record.get('settings')
        )
        tenant_payments = payments_for_tenant(payment_records, tenant_record, single_tenant)

        try:
            results.append(reconcile_records(tenant_record, tenant_payments, as_of, settings, priorities))
        except InvalidTenancyError as e:
            logger.error(f"Unable to calculate dues for tenant {e.tenant_id}: {str(e)}")
            failures.append((e.tenant_id, str(e)))

    report_results = None
    if results and not args.no_reports:
        output_dir = args.output_dir or base_settings.get('reports_path')
        report_results = generate_reports(results, output_dir)

    elapsed_time = (datetime.datetime.now() - start_time).total_seconds()

    # Print summary
    print("\n" + "=" * 80)
    print(f"RECONCILIATION COMPLETE - {elapsed_time:.2f}s")
    print("=" * 80)
    print(f"As of: {as_of}")
    print(f"Tenants Reconciled: {len(results)}")

    for result in results:
        summary = result['summary']
        print(f"- Tenant {result['tenant_id']}: {summary.label}, {len(result['gaps'])} gaps, due {summary.rent_due}")

    if failures:
        print("\nTenants Skipped:")
        for tenant_id, message in failures:
            print(f"- Tenant {tenant_id}: {message}")

    if report_results:
        print("\nReports Generated:")
        print(f"- CSV: {report_results['csv_report_path']}")
        print(f"- JSON: {report_results['json_report_path']}")

    print("=" * 80 + "\n")

    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
