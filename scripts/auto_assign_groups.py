"""
Assign every unassigned student to a group of their semester.

Usage:
  python scripts/auto_assign_groups.py
  python scripts/auto_assign_groups.py --verbose
  python scripts/auto_assign_groups.py --export-rosters rosters/
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
from database import db
from models.group import Group
from services.cohort_service import CohortService
from services.excel_export_service import ExcelExportService


def main():
    parser = argparse.ArgumentParser(description="Round-robin group assignment")
    parser.add_argument("--verbose", action="store_true", help="List every student decision")
    parser.add_argument("--export-rosters", metavar="DIR", help="Write one .xlsx roster per group into DIR")
    args = parser.parse_args()

    app = create_app()
    with app.app_context():
        summary = CohortService.auto_assign_students()

        print(f"Assigned: {summary['assigned']} of {summary['total']}")
        print(f"Skipped: {summary['skipped']}")
        for group in summary['groups']:
            print(f"  S{group['semester']} {group['name']}: {group['student_count']}/{group['capacity']}")

        if args.verbose:
            for detail in summary['details']:
                target = detail.get('group_name') or detail.get('reason')
                print(f"  {detail['student_code']}: {detail['status']} ({target})")

        if args.export_rosters:
            os.makedirs(args.export_rosters, exist_ok=True)
            for entry in summary['groups']:
                group = db.session.get(Group, entry['id'])
                output = ExcelExportService.export_group_roster(group, CohortService.get_group_students(group.id))
                path = os.path.join(args.export_rosters, f"S{group.semester}_{group.name}.xlsx")
                with open(path, 'wb') as handle:
                    handle.write(output.getvalue())
                print(f"Roster written to {path}")


if __name__ == '__main__':
    main()
