"""
Run semester promotion (or its read-only dry run) from the command line.

Usage:
  python scripts/run_promotion.py --semester 3 --dry-run
  python scripts/run_promotion.py --semester 3 --actor registrar --yes
  python scripts/run_promotion.py --semester 3 --dry-run --export promotion_s3.xlsx
  python scripts/run_promotion.py --semester 3 --dry-run --report-pdf promotion_s3.pdf
"""

import sys
import os
import argparse

# Ensure project root is on sys.path when running as a script
CURRENT_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.dirname(CURRENT_DIR)
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from app import create_app
from services.excel_export_service import ExcelExportService
from services.promotion_service import PromotionService
from services.reporting_service import ReportingService
from utils.exceptions import AcademicError


def main():
    parser = argparse.ArgumentParser(description="Promote students of a semester")
    parser.add_argument("--semester", type=int, required=True, help="Semester number (1-8)")
    parser.add_argument("--actor", help="Identity recorded as promoted_by")
    parser.add_argument("--dry-run", action="store_true", help="Classify only; do not change records")
    parser.add_argument("--yes", action="store_true", help="Do not prompt for confirmation")
    parser.add_argument("--export", help="Write the results to this .xlsx file")
    parser.add_argument("--report-pdf", help="Write the read-only eligibility report to this .pdf file")
    args = parser.parse_args()

    if not args.dry_run and not args.yes:
        try:
            confirm = input(f"Promote semester {args.semester}? Type 'PROMOTE' to confirm: ").strip()
        except EOFError:
            raise SystemExit("No input available. Re-run with --yes for non-interactive usage.")
        if confirm != 'PROMOTE':
            print("Cancelled. No changes made.")
            sys.exit(0)

    app = create_app()
    with app.app_context():
        try:
            summary = PromotionService.promote_semester(args.semester, promoted_by=args.actor, dry_run=args.dry_run)
        except AcademicError as e:
            raise SystemExit(e.message)

        print("\nDRY RUN" if args.dry_run else "\nPromotion complete.")
        print(f"Semester: {summary['semester']}")
        print(f"Students: {summary['total']}")
        print(f"Promoted: {summary['promoted']}")
        print(f"Graduated: {summary['graduated']}")
        print(f"Failed: {summary['failed']}")
        print(f"Manual review required: {summary['manual_promotion_required']}")
        print(f"Errors: {summary['errors']}")
        for entry in summary['manual_promotion_list']:
            print(f"  - {entry['student_code']}: attendance {entry['attendance_percentage']}%")

        if args.export:
            output = ExcelExportService.export_promotion_results(summary)
            with open(args.export, 'wb') as handle:
                handle.write(output.getvalue())
            print(f"Results written to {args.export}")

        if args.report_pdf:
            report = PromotionService.get_promotion_report(args.semester)
            with open(args.report_pdf, 'wb') as handle:
                handle.write(ReportingService.generate_promotion_report_pdf(report))
            print(f"Report written to {args.report_pdf}")


if __name__ == '__main__':
    main()
