"""PIL-based tile renderer for Stream Deck keys."""

from PIL import Image, ImageDraw, ImageFont

SIZE = (96, 96)
FONT_PATH = "/System/Library/Fonts/Helvetica.ttc"

BG_EMPTY = "#111827"
BG_HUD = "#111827"
BG_PROBLEM = "#1e3a5f"
BG_ANSWER = "#065f46"
BG_SELECTED = "#b45309"
BG_REMOVING = "#14532d"

OP_COLORS = {
    "+": "#22c55e",
    "-": "#ef4444",
    "×": "#3b82f6",
    "÷": "#eab308",
}


def _font(size: int) -> ImageFont.FreeTypeFont:
    try:
        return ImageFont.truetype(FONT_PATH, size)
    except OSError:
        return ImageFont.load_default(size)


def _fit(text: str, sizes: tuple[int, ...] = (30, 24, 18, 14, 11)) -> int:
    """Font size for ``text`` — shrink as the string gets longer."""
    index = min(len(sizes) - 1, max(0, (len(text) - 3) // 3))
    return sizes[index]


def _tile_bg(base: str, selected: bool, removing: bool) -> str:
    if removing:
        return BG_REMOVING
    if selected:
        return BG_SELECTED
    return base


def render_empty(size=SIZE) -> Image.Image:
    return Image.new("RGB", size, BG_EMPTY)


def render_problem(operands: tuple[int, ...], operator: str, selected: bool = False,
                   removing: bool = False, size=SIZE) -> Image.Image:
    """Problem tile. Long expressions wrap onto two lines."""
    img = Image.new("RGB", size, _tile_bg(BG_PROBLEM, selected, removing))
    d = ImageDraw.Draw(img)
    color = OP_COLORS.get(operator, "white")
    text = f" {operator} ".join(str(n) for n in operands)
    cx, cy = size[0] // 2, size[1] // 2
    if len(text) <= 9:
        d.text((cx, cy), text, font=_font(_fit(text)), fill="white", anchor="mm")
    else:
        half = (len(operands) + 1) // 2
        top = f" {operator} ".join(str(n) for n in operands[:half])
        bottom = f"{operator} " + f" {operator} ".join(str(n) for n in operands[half:])
        fsize = min(_fit(top), _fit(bottom))
        d.text((cx, cy - 14), top, font=_font(fsize), fill="white", anchor="mm")
        d.text((cx, cy + 14), bottom, font=_font(fsize), fill="white", anchor="mm")
    d.rectangle([3, 3, size[0] - 4, size[1] - 4], outline=color, width=2)
    return img


def render_answer(value: int, selected: bool = False, removing: bool = False,
                  size=SIZE) -> Image.Image:
    img = Image.new("RGB", size, _tile_bg(BG_ANSWER, selected, removing))
    d = ImageDraw.Draw(img)
    text = str(value)
    d.rectangle([3, 3, size[0] - 4, size[1] - 4], outline="#059669", width=2)
    d.text((size[0] // 2, size[1] // 2), text, font=_font(_fit(text, (36, 28, 20, 14))),
           fill="white", anchor="mm")
    return img


def render_stat(label: str, value: str, color: str = "#34d399", bg: str = BG_HUD,
                size=SIZE) -> Image.Image:
    """HUD key: small grey caption over a large value."""
    img = Image.new("RGB", size, bg)
    d = ImageDraw.Draw(img)
    d.text((size[0] // 2, 20), label, font=_font(13), fill="#9ca3af", anchor="mt")
    d.text((size[0] // 2, 50), value, font=_font(_fit(value, (26, 20, 16, 12))),
           fill=color, anchor="mt")
    return img


def render_title(player_name: str = "", size=SIZE) -> Image.Image:
    img = Image.new("RGB", size, "#4c1d95")
    d = ImageDraw.Draw(img)
    d.text((48, 26), "NUMBER", font=_font(14), fill="#c4b5fd", anchor="mt")
    d.text((48, 46), "BONDS", font=_font(16), fill="#fbbf24", anchor="mt")
    if player_name:
        d.text((48, 72), player_name[:10], font=_font(11), fill="#ddd6fe", anchor="mt")
    return img


def render_boss_timer(time_left: float, color: str, size=SIZE) -> Image.Image:
    """Boss countdown on the current palette colour."""
    img = Image.new("RGB", size, color)
    d = ImageDraw.Draw(img)
    d.text((48, 18), "BOSS!", font=_font(14), fill="#fde047", anchor="mt")
    d.text((48, 44), f"{max(0.0, time_left):.1f}s", font=_font(24), fill="white", anchor="mt")
    return img
