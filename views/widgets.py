# views/widgets.py
from PyQt6.QtCore import Qt, QRectF
from PyQt6.QtGui import QColor, QFontMetrics, QTextDocument, QPainterPath, QPen

CONFLICT_COLOR = '#EF4444'
PREVIEW_COLOR = '#93C5FD'


def get_text_color_for_background(hex_color):
    try:
        hex_color = hex_color.lstrip('#')
        r, g, b = tuple(int(hex_color[i:i+2], 16) for i in (0, 2, 4))
        luminance = (0.299 * r + 0.587 * g + 0.114 * b)
        return '#000000' if luminance > 149 else '#FFFFFF'
    except (AttributeError, ValueError):
        return '#FFFFFF'


def _escape(text):
    return text.replace('&', '&amp;').replace('<', '&lt;').replace('>', '&gt;')


def to_qrectf(rect):
    """PixelRect -> QRectF"""
    return QRectF(rect.x, rect.y, rect.width, rect.height)


def draw_block(painter, rect, block, is_pending=False, is_selected=False, is_conflict=False):
    """Paint one class block: rounded box, time line, title and room/instructor line."""
    painter.save()

    if is_pending:
        painter.setOpacity(0.6)

    qrect = to_qrectf(rect)
    block_color = QColor(block.color)
    painter.setBrush(block_color)
    painter.setPen(Qt.PenStyle.NoPen)

    clip_path = QPainterPath()
    clip_path.addRoundedRect(qrect, 4, 4)
    painter.drawPath(clip_path)

    if is_selected or is_conflict:
        pen = QPen(QColor(CONFLICT_COLOR if is_conflict else '#111827'))
        pen.setWidth(2)
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRoundedRect(qrect.adjusted(1, 1, -1, -1), 4, 4)

    painter.setClipPath(clip_path)
    text_color = QColor(get_text_color_for_background(block.color))
    text_rect = qrect.adjusted(4, 1, -4, -1)

    font_metrics = QFontMetrics(painter.font())
    min_text_width = font_metrics.horizontalAdvance('가나')
    if text_rect.width() < min_text_width:
        painter.restore()
        return

    full_html = f"<p style='margin:0; font-size:8pt;'>{_escape(block.time_text())}</p>"
    full_html += f"<p style='margin:0; font-weight:bold;'>{_escape(block.title or '제목 없음')}</p>"
    details = " · ".join(name for name in (block.room_name, block.instructor_name) if name)
    if details:
        full_html += f"<p style='margin:0; font-size:8pt;'>{_escape(details)}</p>"

    doc = QTextDocument()
    doc.setDefaultStyleSheet(f"p {{ color: {text_color.name()}; line-height: 100%; }}")
    doc.setTextWidth(text_rect.width())
    doc.setHtml(full_html)

    painter.translate(text_rect.topLeft())
    doc.drawContents(painter, QRectF(0, 0, text_rect.width(), text_rect.height()))

    painter.restore()


def draw_preview(painter, rect, label, is_conflict=False):
    """Dashed ghost box for the candidate of a gesture in progress."""
    painter.save()
    qrect = to_qrectf(rect)

    fill = QColor(CONFLICT_COLOR if is_conflict else PREVIEW_COLOR)
    fill.setAlpha(110)
    painter.setBrush(fill)
    pen = QPen(QColor(CONFLICT_COLOR if is_conflict else '#2563EB'))
    pen.setStyle(Qt.PenStyle.DashLine)
    pen.setWidth(2)
    painter.setPen(pen)
    painter.drawRoundedRect(qrect, 4, 4)

    painter.setPen(QColor('#111827'))
    painter.drawText(qrect.adjusted(4, 2, -4, -2),
                     Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignTop, label)
    painter.restore()


def draw_overflow_marker(painter, rect, hidden_count, expanded=False):
    painter.save()
    qrect = to_qrectf(rect)
    painter.setBrush(QColor('#E5E7EB'))
    painter.setPen(Qt.PenStyle.NoPen)
    painter.drawRoundedRect(qrect, 3, 3)
    painter.setPen(QColor('#374151'))
    text = "접기" if expanded else f"+{hidden_count}개 더보기"
    painter.drawText(qrect, Qt.AlignmentFlag.AlignCenter, text)
    painter.restore()
