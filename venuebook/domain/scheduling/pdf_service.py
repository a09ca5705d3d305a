"""
Schedule PDF Generator
Printable month grid: one row per date, one column per venue slot
"""

import calendar
import io
import logging
from datetime import datetime
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .schemas import CalendarView
from .time_calculator import to_input_time

logger = logging.getLogger(__name__)


class SchedulePDFGenerator:
    """Render a CalendarView as a landscape schedule sheet"""

    def __init__(self, view: CalendarView):
        self.view = view

        # PDF settings
        self.page_width, self.page_height = landscape(A4)
        self.margin = 0.5 * inch
        self.content_width = self.page_width - (2 * self.margin)

        self.brand_color = colors.HexColor("#2f6364")
        self.dark_gray = colors.HexColor("#333333")
        self.light_gray = colors.HexColor("#f5f5f5")
        self.weekend_color = colors.HexColor("#e0f7fa")

    @property
    def title(self) -> str:
        return f"DJ Schedule - {calendar.month_name[self.view.month]} {self.view.year}"

    @property
    def filename(self) -> str:
        return f"DJ-Schedule-{calendar.month_name[self.view.month]}-{self.view.year}.pdf"

    def generate(self) -> bytes:
        """Generate PDF and return bytes"""
        logger.info(f"📄 Generating schedule PDF for {self.view.year}-{self.view.month:02d}")

        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=landscape(A4),
            rightMargin=self.margin,
            leftMargin=self.margin,
            topMargin=self.margin,
            bottomMargin=self.margin,
            title=self.title,
        )

        styles = getSampleStyleSheet()
        title_style = ParagraphStyle(
            "ScheduleTitle",
            parent=styles["Heading1"],
            fontSize=18,
            textColor=self.brand_color,
            spaceAfter=4,
        )
        subtitle_style = ParagraphStyle(
            "ScheduleSubtitle",
            parent=styles["Normal"],
            fontSize=9,
            textColor=colors.grey,
        )
        cell_style = ParagraphStyle(
            "ScheduleCell",
            parent=styles["Normal"],
            fontSize=7,
            leading=9,
            textColor=self.dark_gray,
        )

        story = [
            Paragraph(self.title, title_style),
            Paragraph(f"Generated {datetime.now().strftime('%B %d, %Y %H:%M')}", subtitle_style),
            Spacer(1, 0.2 * inch),
        ]

        columns = self.view.columns
        table_data = [["Date"] + [column.label for column in columns]]
        weekend_rows = []

        for index, row in enumerate(self.view.rows, start=1):
            line = [f"{row.date.day} {row.date.strftime('%a')}"]
            for cell in row.cells:
                line.append(self._cell_text(cell, cell_style))
            table_data.append(line)
            if row.date.weekday() >= 5:
                weekend_rows.append(index)

        date_width = 0.8 * inch
        column_width = (self.content_width - date_width) / max(len(columns), 1)
        table = Table(
            table_data,
            colWidths=[date_width] + [column_width] * len(columns),
            repeatRows=1,
        )

        commands = [
            # Header row
            ("BACKGROUND", (0, 0), (-1, 0), self.brand_color),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("FONT", (0, 0), (-1, 0), "Helvetica-Bold", 8),
            # Data rows
            ("FONT", (0, 1), (0, -1), "Helvetica-Bold", 8),
            ("TEXTCOLOR", (0, 1), (-1, -1), self.dark_gray),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, self.light_gray]),
            ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
            ("TOPPADDING", (0, 0), (-1, -1), 3),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
        ]
        for index in weekend_rows:
            commands.append(("BACKGROUND", (0, index), (-1, index), self.weekend_color))

        table.setStyle(TableStyle(commands))
        story.append(table)

        doc.build(story, onFirstPage=self._add_page_number, onLaterPages=self._add_page_number)

        pdf_bytes = buffer.getvalue()
        buffer.close()

        logger.info(f"✅ Generated schedule PDF ({len(pdf_bytes)} bytes)")
        return pdf_bytes

    @staticmethod
    def _cell_text(cell, style):
        assignment = cell.assignment
        if assignment is None:
            return "-"
        name = assignment.artistName or assignment.specialEvent or "TBA"
        times = f"{assignment.startTime}-{to_input_time(assignment.endTime)}"
        return Paragraph(f"<b>{escape(name)}</b><br/>{times}", style)

    def _add_page_number(self, canvas_obj, doc):
        """Add page numbers to PDF"""
        page_num = canvas_obj.getPageNumber()
        canvas_obj.setFont("Helvetica", 8)
        canvas_obj.setFillColor(colors.grey)
        canvas_obj.drawRightString(
            self.page_width - self.margin, self.margin / 2, f"Page {page_num}"
        )


def generate_schedule_pdf(view: CalendarView) -> tuple[bytes, str]:
    """Render the month grid and return (pdf_bytes, download filename)"""
    generator = SchedulePDFGenerator(view)
    pdf_bytes = generator.generate()
    logger.info(f"📄 Schedule PDF rendered: {generator.filename} ({len(pdf_bytes)} bytes)")
    return pdf_bytes, generator.filename
