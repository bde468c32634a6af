"""Rasterize a PaintPlan into styled rich text.

Paints are applied in order onto a character grid, later paints covering
earlier ones, then the grid is flattened into one ``rich.text.Text`` that a
Textual widget can render.
"""

from __future__ import annotations

from functools import lru_cache

from rich.cells import cell_len, get_character_cell_size
from rich.style import Style
from rich.text import Text

from determinant.panes import Borders
from determinant.render import Block, ListView, PaintPlan, Paragraph, Rect

HORIZONTAL = "─"
VERTICAL = "│"
TOP_LEFT = "┌"
TOP_RIGHT = "┐"
BOTTOM_LEFT = "└"
BOTTOM_RIGHT = "┘"


@lru_cache(maxsize=64)
def parse_style(spec: str) -> Style:
    return Style.parse(spec) if spec else Style.null()


class Grid:
    """A width x height array of (character, style) cells.

    A double-width character occupies its own cell and an empty-string
    placeholder in the cell to its right, so every row flattens to exactly
    ``width`` terminal cells.
    """

    def __init__(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self.chars = [[" "] * width for _ in range(height)]
        self.styles = [[Style.null()] * width for _ in range(height)]

    def set(self, x: int, y: int, char: str, style: Style) -> None:
        if not (0 <= x < self.width and 0 <= y < self.height):
            return
        row = self.chars[y]
        # Overwriting either half of a wide character blanks the other half.
        if row[x] == "" and x > 0:
            row[x - 1] = " "
        elif x + 1 < self.width and row[x + 1] == "":
            row[x + 1] = " "
        row[x] = char
        self.styles[y][x] = style

    def write(self, x: int, y: int, text: str, style: Style, max_width: int) -> None:
        """Write *text* starting at (x, y), clipped to *max_width* cells."""
        limit = min(max_width, self.width - x)
        column = 0
        last = None
        for char in text:
            size = get_character_cell_size(char)
            if size == 0:
                if last is not None and char.isprintable() and 0 <= last and 0 <= y < self.height:
                    self.chars[y][last] += char
                continue
            if column + size > limit:
                break
            self.set(x + column, y, char, style)
            if size == 2:
                self.set(x + column + 1, y, "", style)
            last = x + column
            column += size

    def fill(self, rect: Rect, style: Style) -> None:
        for y in range(rect.y, rect.y + rect.height):
            for x in range(rect.x, rect.x + rect.width):
                self.set(x, y, " ", style)

    def restyle(self, x: int, y: int, style: Style) -> None:
        if 0 <= x < self.width and 0 <= y < self.height:
            self.styles[y][x] = self.styles[y][x] + style

    def to_text(self) -> Text:
        text = Text(no_wrap=True, overflow="crop", end="")
        for y in range(self.height):
            if y:
                text.append("\n")
            run_start = 0
            row_chars = self.chars[y]
            row_styles = self.styles[y]
            for x in range(1, self.width + 1):
                if x == self.width or row_styles[x] != row_styles[run_start]:
                    text.append("".join(row_chars[run_start:x]), row_styles[run_start])
                    run_start = x
        return text


def paint_block(grid: Grid, rect: Rect, block: Block | None) -> Rect:
    """Draw *block*'s borders and title; return the area inside them."""
    if block is None:
        return rect
    borders = block.borders
    style = parse_style(block.border_style)
    right_x = rect.x + rect.width - 1
    bottom_y = rect.y + rect.height - 1

    if Borders.LEFT in borders:
        for y in range(rect.y, rect.y + rect.height):
            grid.set(rect.x, y, VERTICAL, style)
    if Borders.RIGHT in borders:
        for y in range(rect.y, rect.y + rect.height):
            grid.set(right_x, y, VERTICAL, style)
    if Borders.TOP in borders:
        grid.write(rect.x, rect.y, HORIZONTAL * rect.width, style, rect.width)
        if Borders.LEFT in borders:
            grid.set(rect.x, rect.y, TOP_LEFT, style)
        if Borders.RIGHT in borders:
            grid.set(right_x, rect.y, TOP_RIGHT, style)
    if Borders.BOTTOM in borders:
        grid.write(rect.x, bottom_y, HORIZONTAL * rect.width, style, rect.width)
        if Borders.LEFT in borders:
            grid.set(rect.x, bottom_y, BOTTOM_LEFT, style)
        if Borders.RIGHT in borders:
            grid.set(right_x, bottom_y, BOTTOM_RIGHT, style)

    inner = rect.inner(borders)
    if block.title and Borders.TOP in borders:
        grid.write(inner.x, rect.y, block.title, style, inner.width)
    return inner


def paint_paragraph(grid: Grid, paint: Paragraph) -> None:
    style = parse_style(paint.style)
    grid.fill(paint.rect, style)
    area = paint_block(grid, paint.rect, paint.block)
    for row, line in enumerate(paint.text.split("\n")[: area.height]):
        x = area.x
        if paint.align == "right":
            x = area.x + max(area.width - cell_len(line), 0)
        grid.write(x, area.y + row, line, style, area.x + area.width - x)


def paint_list(grid: Grid, paint: ListView) -> None:
    style = parse_style(paint.style)
    grid.fill(paint.rect, style)
    area = paint_block(grid, paint.rect, paint.block)
    offset = 0
    if paint.selected is not None and paint.selected >= area.height > 0:
        offset = paint.selected - area.height + 1
    highlight = parse_style(paint.highlight_style)
    for row, item in enumerate(paint.items[offset : offset + area.height]):
        y = area.y + row
        if paint.selected == offset + row:
            grid.fill(Rect(area.x, y, area.width, 1), highlight)
            grid.write(area.x, y, item, highlight, area.width)
        else:
            grid.write(area.x, y, item, style, area.width)


def rasterize(plan: PaintPlan) -> Text:
    """Paint every instruction in *plan* and return the frame as rich text."""
    grid = Grid(plan.width, plan.height)
    for paint in plan.paints:
        if isinstance(paint, Paragraph):
            paint_paragraph(grid, paint)
        elif isinstance(paint, ListView):
            paint_list(grid, paint)
    if plan.caret is not None:
        x, y = plan.caret
        grid.restyle(x, y, Style(reverse=True))
    return grid.to_text()
