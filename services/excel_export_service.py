"""
Excel export service for the Academic Progression Engine
Exports promotion results and group rosters to Excel
"""

import openpyxl
from openpyxl.styles import Font, PatternFill, Alignment
from openpyxl.utils import get_column_letter
from io import BytesIO

class ExcelExportService:
    """Service for exporting reports to Excel"""

    @staticmethod
    def create_workbook():
        """Create a new workbook with default styling"""
        wb = openpyxl.Workbook()
        return wb

    @staticmethod
    def style_header_row(ws, row_num, columns):
        """Apply styling to header row"""
        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(start_color="000000", end_color="000000", fill_type="solid")
        header_alignment = Alignment(horizontal="center", vertical="center")

        for col_num, header in enumerate(columns, 1):
            cell = ws.cell(row=row_num, column=col_num, value=header)
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = header_alignment

    @staticmethod
    def auto_adjust_columns(ws):
        """Auto-adjust column widths"""
        for column in ws.columns:
            column_letter = get_column_letter(column[0].column)
            max_length = max((len(str(cell.value)) for cell in column if cell.value is not None), default=0)
            ws.column_dimensions[column_letter].width = min(max_length + 2, 50)

    @staticmethod
    def set_percentage(cell, percent_0_to_100):
        """Write a numeric percentage with a percent number format"""
        if percent_0_to_100 is None:
            cell.value = None
            return cell
        cell.value = float(percent_0_to_100) / 100.0
        if percent_0_to_100 == int(percent_0_to_100):
            cell.number_format = '0%'  # 75% instead of 75.00%
        else:
            cell.number_format = '0.00%'
        cell.alignment = Alignment(horizontal="left", vertical="center")
        return cell

    @staticmethod
    def _save(wb):
        output = BytesIO()
        wb.save(output)
        output.seek(0)
        return output

    @staticmethod
    def export_promotion_results(summary):
        """Export the output of a promotion run (or its dry run) to Excel"""
        wb = ExcelExportService.create_workbook()

        ws = wb.active
        ws.title = "Summary"
        ExcelExportService.style_header_row(ws, 1, ['Field', 'Value'])
        rows = [
            ('Semester', summary['semester']),
            ('Dry Run', 'Yes' if summary.get('dry_run') else 'No'),
            ('Total Students', summary['total']),
            ('Promoted', summary['promoted']),
            ('Graduated', summary['graduated']),
            ('Failed', summary['failed']),
            ('Manual Review Required', summary['manual_promotion_required']),
            ('Errors', summary.get('errors', 0)),
        ]
        for row_num, (field, value) in enumerate(rows, 2):
            ws.cell(row=row_num, column=1, value=field)
            ws.cell(row=row_num, column=2, value=value)
        ExcelExportService.auto_adjust_columns(ws)

        results_ws = wb.create_sheet("Results")
        headers = ['Student ID', 'Student Code', 'Outcome', 'Attendance %',
                   'Main Assignments Passed', 'Reason']
        ExcelExportService.style_header_row(results_ws, 1, headers)
        for row_num, result in enumerate(summary['results'], 2):
            results_ws.cell(row=row_num, column=1, value=result.get('student_id'))
            results_ws.cell(row=row_num, column=2, value=result.get('student_code'))
            results_ws.cell(row=row_num, column=3, value=result.get('status'))
            ExcelExportService.set_percentage(results_ws.cell(row=row_num, column=4),
                                              result.get('attendance_percentage'))
            passed = result.get('main_assignments_passed')
            results_ws.cell(row=row_num, column=5, value=None if passed is None else ('Yes' if passed else 'No'))
            results_ws.cell(row=row_num, column=6, value=result.get('reason'))
        ExcelExportService.auto_adjust_columns(results_ws)

        manual_ws = wb.create_sheet("Manual Review")
        ExcelExportService.style_header_row(manual_ws, 1, ['Student ID', 'Student Code', 'Attendance %', 'Current Status'])
        for row_num, entry in enumerate(summary['manual_promotion_list'], 2):
            manual_ws.cell(row=row_num, column=1, value=entry['student_id'])
            manual_ws.cell(row=row_num, column=2, value=entry['student_code'])
            ExcelExportService.set_percentage(manual_ws.cell(row=row_num, column=3), entry['attendance_percentage'])
            manual_ws.cell(row=row_num, column=4, value=entry['current_status'])
        ExcelExportService.auto_adjust_columns(manual_ws)

        return ExcelExportService._save(wb)

    @staticmethod
    def export_group_roster(group, students):
        """Export a group's members to Excel"""
        wb = ExcelExportService.create_workbook()
        ws = wb.active
        ws.title = "Roster"

        ws.cell(row=1, column=1, value=f"{group.name} - Semester {group.semester} ({group.academic_year})").font = Font(bold=True)
        ws.cell(row=2, column=1, value=f"Students: {group.student_count}/{group.capacity}")

        headers = ['#', 'Student Code', 'Full Name', 'Enrollment Year', 'Status']
        ExcelExportService.style_header_row(ws, 4, headers)
        for index, student in enumerate(students, 1):
            row_num = 4 + index
            ws.cell(row=row_num, column=1, value=index)
            ws.cell(row=row_num, column=2, value=student.student_code)
            ws.cell(row=row_num, column=3, value=student.full_name)
            ws.cell(row=row_num, column=4, value=student.enrollment_year)
            ws.cell(row=row_num, column=5, value=student.status)
        ExcelExportService.auto_adjust_columns(ws)

        return ExcelExportService._save(wb)
