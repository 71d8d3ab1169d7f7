"""
Renderers
---------
The renderer interface the menu service hands command trees to, plus the
two shipped renderers: plain text through Rich and PNG cards through Pillow.

The service never inspects artifact bytes; it only caches them.
"""

from typing import Dict, List, Optional, Protocol, Sequence, Tuple, Type
import asyncio
import io
import textwrap

from PIL import Image, ImageDraw, ImageFont

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from commands.grouping import group_commands
from commands.models import Command
from core.errors import ConfigError
from infra.config import RenderConfig


class Renderer(Protocol):
    """Turns command trees into a binary artifact."""

    extension: str

    async def render_list(
        self,
        commands: Sequence[Command],
        config: RenderConfig,
        grouped: bool = False,
    ) -> bytes: ...

    async def render_command(
        self,
        commands: Sequence[Command],
        config: RenderConfig,
        title: Optional[str] = None,
    ) -> bytes: ...


class RichTextRenderer:
    """Renders menus as UTF-8 text through a recording Rich console."""

    extension = "txt"

    def _console(self, config: RenderConfig) -> Console:
        return Console(
            record=True,
            width=config.width,
            file=io.StringIO(),
            color_system=None,
            force_terminal=False,
        )

    def _export(self, console: Console, config: RenderConfig) -> bytes:
        if config.footer:
            console.print(Text(config.footer, style="dim"))
        return console.export_text().encode("utf-8")

    def _command_table(self, commands: Sequence[Command]) -> Table:
        table = Table(show_header=False, box=None, padding=(0, 1))
        table.add_column("name", style="bold", no_wrap=True)
        table.add_column("desc")
        for cmd in commands:
            aliases = [name for name in cmd.callable_names if name != cmd.default_name]
            label = cmd.default_name + (f" ({', '.join(aliases)})" if aliases else "")
            table.add_row(label, cmd.desc)
        return table

    async def render_list(
        self,
        commands: Sequence[Command],
        config: RenderConfig,
        grouped: bool = False,
    ) -> bytes:
        console = self._console(config)
        if config.header:
            console.print(Text(config.header, style="bold"))

        if grouped:
            for group in group_commands(commands):
                console.rule(group.name)
                console.print(self._command_table(group.commands))
        else:
            console.print(self._command_table(commands))

        return self._export(console, config)

    async def render_command(
        self,
        commands: Sequence[Command],
        config: RenderConfig,
        title: Optional[str] = None,
    ) -> bytes:
        console = self._console(config)
        if config.header:
            console.print(Text(config.header, style="bold"))

        for cmd in commands:
            parts = [Text(cmd.desc or "")]
            if cmd.usage:
                parts.append(Text(f"\nUsage:\n{cmd.usage}"))
            if cmd.options:
                options = Table(title="Options", show_header=False, box=None)
                options.add_column("name", no_wrap=True)
                options.add_column("syntax")
                options.add_column("desc")
                for option in cmd.options:
                    options.add_row(option.name, option.syntax, option.desc)
                parts.append(options)
            if cmd.examples:
                parts.append(Text(f"\nExamples:\n{cmd.examples}"))
            if cmd.subs:
                parts.append(Text("\nSubcommands:"))
                parts.append(self._command_table(cmd.subs))
            console.print(Panel(Group(*parts), title=title or cmd.default_name))

        return self._export(console, config)


# (style, text) pairs laid out top to bottom by ImageRenderer
Line = Tuple[str, str]


class ImageRenderer:
    """
    Renders menus as PNG cards with Pillow.

    Colors, padding, corner radius and font sizes come from RenderConfig;
    `width` is the wrap width in characters.
    """

    extension = "png"
    LINE_SPACING = 1.4

    def _font(self, size: int):
        return ImageFont.load_default(size=size)

    def _wrap(self, text: str, width: int, indent: str = "") -> List[str]:
        lines: List[str] = []
        for paragraph in text.split("\n"):
            if not paragraph.strip():
                continue
            lines.extend(textwrap.wrap(paragraph, width=width, initial_indent=indent, subsequent_indent=indent))
        return lines

    def _command_lines(self, commands: Sequence[Command], config: RenderConfig, indent: str = "") -> List[Line]:
        lines: List[Line] = []
        for cmd in commands:
            aliases = [name for name in cmd.callable_names if name != cmd.default_name]
            label = cmd.default_name + (f" ({', '.join(aliases)})" if aliases else "")
            lines.append(("name", f"{indent}{label}"))
            lines.extend(("text", line) for line in self._wrap(cmd.desc or "", config.width, indent + "    "))
        return lines

    def _draw(self, lines: List[Line], config: RenderConfig) -> bytes:
        sizes = {
            "title": config.title_size,
            "heading": config.title_size,
            "name": config.font_size,
            "text": config.font_size,
            "muted": config.font_size,
        }
        fonts = {style: self._font(size) for style, size in sizes.items()}
        colors = {
            "title": config.primary,
            "heading": config.primary,
            "name": config.text_color,
            "text": config.text_color,
            "muted": config.secondary,
        }

        measure = ImageDraw.Draw(Image.new("RGB", (1, 1)))
        heights = [int(sizes[style] * self.LINE_SPACING) for style, _ in lines]
        text_width = max((measure.textlength(text, font=fonts[style]) for style, text in lines), default=0)

        width = int(text_width) + 2 * config.padding
        height = sum(heights) + 2 * config.padding

        image = Image.new("RGBA", (max(width, 1), max(height, 1)), (0, 0, 0, 0))
        draw = ImageDraw.Draw(image)
        draw.rounded_rectangle((0, 0, image.width - 1, image.height - 1), radius=config.radius, fill=config.bg_color)

        y = config.padding
        for (style, text), line_height in zip(lines, heights):
            draw.text((config.padding, y), text, font=fonts[style], fill=colors[style])
            y += line_height

        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue()

    async def render_list(
        self,
        commands: Sequence[Command],
        config: RenderConfig,
        grouped: bool = False,
    ) -> bytes:
        lines: List[Line] = []
        if config.header:
            lines.append(("title", config.header))

        if grouped:
            for group in group_commands(commands):
                lines.append(("heading", group.name))
                lines.extend(self._command_lines(group.commands, config, indent="  "))
        else:
            lines.extend(self._command_lines(commands, config))

        if config.footer:
            lines.append(("muted", config.footer))
        return await asyncio.to_thread(self._draw, lines, config)

    async def render_command(
        self,
        commands: Sequence[Command],
        config: RenderConfig,
        title: Optional[str] = None,
    ) -> bytes:
        lines: List[Line] = []
        if config.header:
            lines.append(("title", config.header))

        for cmd in commands:
            lines.append(("heading", title or cmd.default_name))
            lines.extend(("text", line) for line in self._wrap(cmd.desc or "", config.width))
            if cmd.usage:
                lines.append(("muted", "Usage"))
                lines.extend(("text", line) for line in self._wrap(cmd.usage, config.width, "  "))
            if cmd.options:
                lines.append(("muted", "Options"))
                for option in cmd.options:
                    lines.append(("name", f"  {option.name} {option.syntax}".rstrip()))
                    lines.extend(("text", line) for line in self._wrap(option.desc or "", config.width, "      "))
            if cmd.examples:
                lines.append(("muted", "Examples"))
                lines.extend(("text", line) for line in self._wrap(cmd.examples, config.width, "  "))
            if cmd.subs:
                lines.append(("muted", "Subcommands"))
                lines.extend(self._command_lines(cmd.subs, config, indent="  "))

        if config.footer:
            lines.append(("muted", config.footer))
        return await asyncio.to_thread(self._draw, lines, config)


RENDERERS: Dict[str, Type] = {
    RichTextRenderer.extension: RichTextRenderer,
    ImageRenderer.extension: ImageRenderer,
}


def create_renderer(extension: str) -> Renderer:
    """Shipped renderer for an artifact extension."""
    try:
        return RENDERERS[extension.lstrip(".").lower()]()
    except KeyError:
        raise ConfigError(f"No renderer for artifact extension: {extension}") from None
