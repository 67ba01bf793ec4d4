"""Generate monthly statement PDFs for finance endpoints."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from io import BytesIO
from pathlib import Path

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen.canvas import Canvas
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from backend.services.aggregation import LedgerAggregationService
from backend.services.date_ranges import civil_today, format_civil_date
from shared.models import CategoryType, DateRange
from shared.text_utils import format_vnd


PIE_SLICES = 6
TOP_CATEGORIES = 10
TOP_TRANSACTIONS = 20

# Standard Type1 fonts stop at Latin-1; DejaVu covers Vietnamese and ships with matplotlib.
FONT_REGULAR = "DejaVuSans"
FONT_BOLD = "DejaVuSans-Bold"


@dataclass(slots=True)
class ReportCategoryRow:
    name: str
    amount: Decimal


@dataclass(slots=True)
class ReportTransactionRow:
    tx_date: str
    description: str
    category: str
    amount: Decimal


@dataclass(slots=True)
class MonthlyReportData:
    """Input payload for monthly statement rendering."""

    period_label: str
    total_income: Decimal
    total_expense: Decimal
    categories: list[ReportCategoryRow] = field(default_factory=list)
    transactions: list[ReportTransactionRow] = field(default_factory=list)

    @property
    def net(self) -> Decimal:
        return self.total_income - self.total_expense


def build_monthly_report_data(
    aggregation: LedgerAggregationService,
    user_id: int,
    period: DateRange,
) -> MonthlyReportData:
    """Collect every figure of the statement from the aggregation layer."""
    income, expense = aggregation.income_expense(user_id, period)
    categories, _ = aggregation.top_categories_by_spend(user_id, period, TOP_CATEGORIES)
    transactions = aggregation.top_transactions(user_id, CategoryType.EXPENSE, period, TOP_TRANSACTIONS)
    return MonthlyReportData(
        period_label=period.label,
        total_income=income,
        total_expense=expense,
        categories=[ReportCategoryRow(name=item.category_name, amount=item.total) for item in categories],
        transactions=[
            ReportTransactionRow(
                tx_date=format_civil_date(item.tx_date),
                description=item.description or "",
                category=item.category_name or "",
                amount=item.amount,
            )
            for item in transactions
        ],
    )


def register_report_fonts() -> None:
    """Register the Unicode TTF family once per process."""
    if FONT_REGULAR in pdfmetrics.getRegisteredFontNames():
        return
    font_dir = Path(matplotlib.get_data_path()) / "fonts" / "ttf"
    pdfmetrics.registerFont(TTFont(FONT_REGULAR, str(font_dir / "DejaVuSans.ttf")))
    pdfmetrics.registerFont(TTFont(FONT_BOLD, str(font_dir / "DejaVuSans-Bold.ttf")))
    pdfmetrics.registerFontFamily(
        FONT_REGULAR,
        normal=FONT_REGULAR,
        bold=FONT_BOLD,
        italic=FONT_REGULAR,
        boldItalic=FONT_BOLD,
    )


def _report_styles() -> dict[str, ParagraphStyle]:
    base = getSampleStyleSheet()
    return {
        "title": ParagraphStyle(name="ReportTitle", parent=base["Title"], fontName=FONT_BOLD),
        "section": ParagraphStyle(
            name="SectionTitle", parent=base["Heading2"], fontName=FONT_BOLD, spaceAfter=4, fontSize=12
        ),
        "body": ParagraphStyle(name="ReportBody", parent=base["BodyText"], fontName=FONT_REGULAR),
    }


def _autopct_threshold(pct: float) -> str:
    return f"{pct:.1f}%" if pct >= 3 else ""


def _summarize_categories(categories: list[ReportCategoryRow]) -> list[ReportCategoryRow]:
    ordered = sorted(categories, key=lambda row: row.amount, reverse=True)
    top_rows = ordered[:PIE_SLICES]
    other_total = sum((row.amount for row in ordered[PIE_SLICES:]), Decimal("0"))
    if other_total > 0:
        top_rows.append(ReportCategoryRow(name="Khác", amount=other_total))
    return top_rows


def _build_pie_chart(categories: list[ReportCategoryRow]) -> bytes:
    rows = _summarize_categories(categories)

    fig, ax = plt.subplots(figsize=(6.2, 3.6), dpi=140)
    wedges, _, _ = ax.pie(
        [float(row.amount) for row in rows],
        labels=None,
        autopct=_autopct_threshold,
        startangle=90,
        wedgeprops={"width": 0.45, "edgecolor": "white"},
        pctdistance=0.78,
    )
    ax.legend(
        wedges,
        [row.name for row in rows],
        title="Danh mục",
        loc="center left",
        bbox_to_anchor=(1.0, 0.5),
        fontsize=8,
        frameon=False,
    )
    ax.set_title("Chi tiêu theo danh mục")
    ax.axis("equal")

    image_buffer = BytesIO()
    fig.savefig(image_buffer, format="png", bbox_inches="tight")
    plt.close(fig)
    image_buffer.seek(0)
    return image_buffer.read()


class _FooterCanvas(Canvas):
    def __init__(self, *args, generated_on: str, **kwargs):
        super().__init__(*args, **kwargs)
        self._generated_on = generated_on
        self._saved_page_states: list[dict] = []

    def showPage(self) -> None:  # noqa: N802 (ReportLab API)
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self) -> None:
        page_count = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self.setFont(FONT_REGULAR, 8)
            self.setFillColor(colors.HexColor("#8A8F98"))
            self.drawString(20 * mm, 10 * mm, f"Lập ngày {self._generated_on}")
            self.drawRightString(190 * mm, 10 * mm, f"{self._pageNumber}/{page_count}")
            super().showPage()
        super().save()


def _grid_style(row_count: int) -> list[tuple]:
    style: list[tuple] = [
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#EEF1F4")),
        ("FONTNAME", (0, 0), (-1, -1), FONT_REGULAR),
        ("FONTNAME", (0, 0), (-1, 0), FONT_BOLD),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.HexColor("#D7DCE2")),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("TOPPADDING", (0, 0), (-1, -1), 4),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
    ]
    for row_index in range(2, row_count, 2):
        style.append(("BACKGROUND", (0, row_index), (-1, row_index), colors.HexColor("#FAFBFC")))
    return style


def _build_summary_cards(data: MonthlyReportData, body_style: ParagraphStyle) -> Table:
    card_style = ParagraphStyle(
        name="SummaryCard",
        parent=body_style,
        fontSize=10,
        leading=14,
        textColor=colors.HexColor("#1F2937"),
    )
    table = Table(
        [
            [
                Paragraph("<b>Thu nhập</b><br/>" + format_vnd(data.total_income), card_style),
                Paragraph("<b>Chi tiêu</b><br/>" + format_vnd(data.total_expense), card_style),
                Paragraph("<b>Chênh lệch</b><br/>" + format_vnd(data.net), card_style),
            ]
        ],
        colWidths=[58 * mm, 58 * mm, 58 * mm],
    )
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, -1), colors.HexColor("#F4F6F8")),
                ("BOX", (0, 0), (-1, -1), 0.6, colors.HexColor("#DDE2E8")),
                ("INNERGRID", (0, 0), (-1, -1), 0.4, colors.HexColor("#DDE2E8")),
                ("LEFTPADDING", (0, 0), (-1, -1), 8),
                ("TOPPADDING", (0, 0), (-1, -1), 8),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 8),
            ]
        )
    )
    return table


def _build_categories_table(data: MonthlyReportData) -> Table:
    table_data = [["Danh mục", "Số tiền", "Tỷ lệ"]]
    for row in data.categories:
        ratio = (row.amount / data.total_expense * Decimal("100")) if data.total_expense > 0 else Decimal("0")
        table_data.append(
            [row.name, format_vnd(row.amount), f"{ratio.quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)}%"]
        )
    table = Table(table_data, colWidths=[90 * mm, 50 * mm, 24 * mm], repeatRows=1)
    table.setStyle(TableStyle(_grid_style(len(table_data)) + [("ALIGN", (1, 1), (-1, -1), "RIGHT")]))
    return table


def _build_transactions_table(data: MonthlyReportData) -> Table:
    def _truncate(value: str, max_length: int = 36) -> str:
        return value if len(value) <= max_length else value[: max_length - 1].rstrip() + "…"

    table_data = [["Ngày", "Mô tả", "Danh mục", "Số tiền"]]
    for row in data.transactions:
        table_data.append([row.tx_date, _truncate(row.description), row.category, format_vnd(row.amount)])
    table = Table(table_data, colWidths=[26 * mm, 64 * mm, 50 * mm, 34 * mm], repeatRows=1)
    table.setStyle(TableStyle(_grid_style(len(table_data)) + [("ALIGN", (3, 1), (3, -1), "RIGHT")]))
    return table


def generate_monthly_report_pdf(data: MonthlyReportData, *, generated_on: date | None = None) -> bytes:
    """Render the monthly statement: summary, category split and largest expenses."""

    generated_label = format_civil_date(generated_on or civil_today())
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=16 * mm,
        leftMargin=16 * mm,
        topMargin=16 * mm,
        bottomMargin=14 * mm,
    )
    register_report_fonts()
    styles = _report_styles()

    story = [
        Paragraph(f"Báo cáo {data.period_label}", styles["title"]),
        Spacer(1, 5 * mm),
        _build_summary_cards(data, styles["body"]),
        Spacer(1, 6 * mm),
        Paragraph("Chi tiêu theo danh mục", styles["section"]),
    ]
    if not data.categories:
        story.append(Paragraph("Không có khoản chi nào trong kỳ.", styles["body"]))
    else:
        story.append(Image(BytesIO(_build_pie_chart(data.categories)), width=166 * mm, height=92 * mm))
        story.append(Spacer(1, 3 * mm))
        story.append(_build_categories_table(data))

    if data.transactions:
        story.append(Spacer(1, 6 * mm))
        story.append(Paragraph("Các khoản chi lớn nhất", styles["section"]))
        story.append(_build_transactions_table(data))

    doc.build(
        story,
        canvasmaker=lambda *args, **kwargs: _FooterCanvas(*args, generated_on=generated_label, **kwargs),
    )
    buffer.seek(0)
    return buffer.read()
