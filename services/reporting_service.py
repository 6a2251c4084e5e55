"""
Reporting service for the Academic Progression Engine
PDF reports for promotion eligibility and student academic history
"""

from io import BytesIO
from xml.sax.saxutils import escape as xml_escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from database import db
from models.academic import Subject

ELIGIBILITY_LABELS = {
    'auto_promote': 'Promote',
    'manual_review_required': 'Manual review',
    'failed': 'Fail',
}

class ReportingService:
    """Service for generating PDF reports"""

    @staticmethod
    def _format_number(value):
        """Format number: whole numbers without decimals, fractional numbers with 2 decimal places."""
        try:
            if value is None:
                return None
            num = float(value)
            if num == int(num):
                return int(num)
            return round(num, 2)
        except (ValueError, TypeError):
            return value

    @staticmethod
    def _get_paragraph_style():
        """Compact cell style so long text wraps inside table cells"""
        styles = getSampleStyleSheet()
        return ParagraphStyle('Cell', parent=styles['Normal'], fontSize=9, leading=11,
                              spaceAfter=0, spaceBefore=0)

    @staticmethod
    def _to_paragraph(value):
        text = '' if value is None else xml_escape(str(value)).replace('\n', '<br/>')
        return Paragraph(text, ReportingService._get_paragraph_style())

    @staticmethod
    def _wrap_table_data(rows, no_wrap_cols=None):
        """Map body cells to Paragraphs for word-wrap; the header row is kept as-is"""
        if not rows:
            return rows
        no_wrap_set = set(no_wrap_cols or [])
        wrapped_rows = [rows[0]]
        for row in rows[1:]:
            wrapped_rows.append([
                ('' if cell is None else str(cell)) if idx in no_wrap_set else ReportingService._to_paragraph(cell)
                for idx, cell in enumerate(row)
            ])
        return wrapped_rows

    @staticmethod
    def _table(rows, col_widths, no_wrap_cols=None):
        tbl = Table(ReportingService._wrap_table_data(rows, no_wrap_cols), repeatRows=1, colWidths=col_widths)
        tbl.setStyle(TableStyle([
            ('BOX', (0, 0), (-1, -1), 0.5, colors.grey),
            ('INNERGRID', (0, 0), (-1, -1), 0.25, colors.lightgrey),
            ('BACKGROUND', (0, 0), (-1, 0), colors.black),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ]))
        return tbl

    @staticmethod
    def _build(elements):
        buffer = BytesIO()
        doc = SimpleDocTemplate(buffer, pagesize=A4, leftMargin=18*mm, rightMargin=18*mm,
                                topMargin=18*mm, bottomMargin=18*mm)
        doc.build(elements)
        pdf_bytes = buffer.getvalue()
        buffer.close()
        return pdf_bytes

    @staticmethod
    def generate_promotion_report_pdf(report):
        """Generate a PDF from the output of PromotionService.get_promotion_report"""
        styles = getSampleStyleSheet()
        title_center = ParagraphStyle('TitleCenter', parent=styles['Title'], alignment=1)
        sub_center = ParagraphStyle('SubCenter', parent=styles['Normal'], alignment=1, fontSize=10)

        elements = [
            Paragraph('Promotion Eligibility Report', title_center),
            Paragraph(f"Semester {report['semester']}", sub_center),
            Spacer(1, 10),
        ]

        counts = Table([
            ['Students', report['total_students']],
            ['Promote', report['auto_promote']],
            ['Manual review', report['manual_review_required']],
            ['Fail', report['failed']],
        ], colWidths=[40*mm, 30*mm])
        counts.setStyle(TableStyle([
            ('BOX', (0, 0), (-1, -1), 0.5, colors.grey),
            ('INNERGRID', (0, 0), (-1, -1), 0.25, colors.lightgrey),
        ]))
        elements.extend([counts, Spacer(1, 10)])

        rows = [['Student', 'Status', 'Attendance %', 'Main Passed', 'Outcome', 'Reason']]
        for entry in report['report']:
            rows.append([
                entry['student_code'],
                entry['current_status'],
                ReportingService._format_number(entry['attendance_percentage']),
                'Yes' if entry['main_assignments_passed'] else 'No',
                ELIGIBILITY_LABELS.get(entry['promotion_eligibility'], entry['promotion_eligibility']),
                entry['reason'],
            ])
        if len(rows) == 1:
            rows.append(['No students', '', '', '', '', ''])

        col_widths = [26*mm, 20*mm, 22*mm, 20*mm, 26*mm, 60*mm]
        elements.append(ReportingService._table(rows, col_widths, no_wrap_cols={0, 1, 2, 3, 4}))

        return ReportingService._build(elements)

    @staticmethod
    def generate_student_history_pdf(student):
        """Generate a PDF of a student's academic history, one table per semester"""
        styles = getSampleStyleSheet()
        elements = [
            Paragraph('Academic History', styles['Title']),
            Paragraph(f"{xml_escape(student.full_name)} ({xml_escape(student.student_code)})", styles['Normal']),
            Paragraph(f"Current semester: {student.current_semester} &nbsp; Status: {student.status}",
                      styles['Normal']),
            Spacer(1, 10),
        ]

        if not student.academic_history:
            elements.append(Paragraph('No academic history recorded.', styles['Normal']))

        for record in student.academic_history:
            outcome = 'Passed' if record.semester_passed else 'Not passed'
            heading = f"Semester {record.semester} - {outcome}"
            if record.manual_promotion_reason:
                heading += f" (manual: {xml_escape(record.manual_promotion_reason)})"
            elements.extend([Paragraph(heading, styles['Heading3']), Spacer(1, 4)])

            rows = [['Subject', 'Main', 'Weekly', 'Total', '%', 'Grade']]
            for subject_record in record.subjects:
                subject = db.session.get(Subject, subject_record.subject_id)
                main = subject_record.main_assignment
                weekly = subject_record.weekly_assignments
                rows.append([
                    subject.code if subject else subject_record.subject_id,
                    f"{ReportingService._format_number(main.marks)}/{ReportingService._format_number(main.max_marks)}"
                    if main else '-',
                    len(weekly),
                    ReportingService._format_number(subject_record.total_marks),
                    ReportingService._format_number(subject_record.percentage),
                    subject_record.grade,
                ])
            if len(rows) == 1:
                rows.append(['No graded work', '', '', '', '', ''])

            col_widths = [50*mm, 28*mm, 20*mm, 24*mm, 22*mm, 20*mm]
            elements.extend([ReportingService._table(rows, col_widths, no_wrap_cols={1, 2, 3, 4, 5}),
                             Spacer(1, 10)])

        return ReportingService._build(elements)
