"""Pygame front end for the remote machine inspector."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from pymsxview.replica import MEMORY, VIDEO, ReplicaStore, StoreEvent
from pymsxview.transport import PushTransport, Transport, TransportError, create_transport
from pymsxview.utils import debug_enabled, debug_log
from pymsxview.view import DiffRenderer, HexLayout, render_hexdump

_FRAME_RATE = 30
_BACKGROUND = (16, 16, 24)
_FOREGROUND = (220, 220, 220)
_DIM = (120, 120, 140)
_CHANGED = (255, 210, 80)
_FIRST_CHANGE = (255, 120, 60)
_SELECTED = (60, 60, 110)
_ERROR = (200, 40, 40)
_SCROLL_EASING = 0.35

_KEY_ACTIONS = {
    "s": "step",
    "f10": "step",
    "r": "reset",
    "f5": "refresh",
    "tab": "toggle",
    "c": "reconnect",
    "up": "line_up",
    "down": "line_down",
    "page up": "page_up",
    "page down": "page_down",
    "home": "top",
    "end": "bottom",
    "q": "quit",
}


@dataclass
class AppConfig:
    """Configuration for the inspector frontend."""

    base_url: str = "http://127.0.0.1:8000"
    transport: str = "polling"
    push_host: str = "127.0.0.1"
    push_port: int = 8765
    columns: int = 16
    font_size: int = 14
    visible_rows: int = 40
    program_columns: int = 36
    fullscreen: bool = False


class InspectorApp:
    """Registers, program listing and a diff-highlighting hex view."""

    def __init__(
        self,
        config: AppConfig,
        *,
        store: ReplicaStore | None = None,
        transport: Transport | None = None,
    ) -> None:
        self._config = config
        self._store = store if store is not None else ReplicaStore()
        self._transport = transport
        self._renderers = {
            MEMORY: DiffRenderer(config.columns),
            VIDEO: DiffRenderer(config.columns),
        }
        self._region = MEMORY
        self._scroll_row = 0.0
        self._target_row = 0
        self._running = False
        self._font = None
        self._perf_enabled = debug_enabled("perf")
        self._blank_layouts: dict[str, HexLayout] = {}
        self._store.subscribe(self._on_store_event)

    @property
    def store(self) -> ReplicaStore:
        return self._store

    @property
    def region(self) -> str:
        return self._region

    @property
    def scroll_row(self) -> float:
        return self._scroll_row

    @property
    def target_row(self) -> int:
        return self._target_row

    @property
    def running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Main loop

    def run(self) -> None:
        try:
            import pygame  # type: ignore
        except Exception as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("pygame is required to run the UI") from exc

        if self._transport is None:
            self._transport = self._create_transport()

        pygame.init()
        pygame.display.set_caption(f"pymsxview ({self._transport.name})")
        pygame.font.init()
        font_name = pygame.font.match_font("menlo,dejavusansmono,couriernew,consolas,monospace")
        if not font_name:
            font_name = pygame.font.get_default_font()
        self._font = pygame.font.Font(font_name, self._config.font_size)

        char_width, line_height = self._font.size("0")
        hex_chars = 6 + self._config.columns * 4 + 2
        width = (self._config.program_columns + 22 + hex_chars) * char_width
        height = (self._config.visible_rows + 3) * (line_height + 2)
        flags = pygame.FULLSCREEN if self._config.fullscreen else 0
        screen = pygame.display.set_mode((width, height), flags)
        clock = pygame.time.Clock()

        self._running = True
        self._transport.refresh()

        while self._running:
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    self._running = False
                elif event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                    self._enter_debug_shell()
                    pygame.event.clear()
                elif event.type == pygame.KEYDOWN:
                    action = _KEY_ACTIONS.get(pygame.key.name(event.key))
                    if debug_enabled("ui"):
                        debug_log("ui", "key=%s action=%s", pygame.key.name(event.key), action)
                    if action is not None:
                        self.handle_action(action)

            applied = self._transport.pump()
            if applied and self._perf_enabled:
                debug_log("perf", "applied=%d", applied)

            layout = self.render_view()
            self._advance_scroll()
            self._draw(pygame, screen, layout)
            pygame.display.flip()
            clock.tick(_FRAME_RATE)

        self._transport.close()
        pygame.quit()

    def handle_action(self, action: str) -> None:
        transport = self._require_transport()
        if action == "step":
            transport.send_step()
        elif action == "reset":
            transport.send_reset()
        elif action == "refresh":
            transport.refresh()
        elif action == "toggle":
            self._region = VIDEO if self._region == MEMORY else MEMORY
            self._scroll_row = 0.0
            self._target_row = 0
            if self._region == VIDEO:
                transport.request_video_sync()
        elif action == "reconnect":
            self._reconnect(transport)
        elif action == "line_up":
            self._scroll_by(-1)
        elif action == "line_down":
            self._scroll_by(1)
        elif action == "page_up":
            self._scroll_by(-self._config.visible_rows)
        elif action == "page_down":
            self._scroll_by(self._config.visible_rows)
        elif action == "top":
            self._scroll_by(-self._row_count())
        elif action == "bottom":
            self._scroll_by(self._row_count())
        elif action == "quit":
            self._running = False
        else:
            raise ValueError(f"unknown action {action!r}")

    def render_view(self) -> HexLayout:
        """Render the active region and follow the first change into view."""

        layout = self._layout(self._region)
        target = layout.take_scroll_target()
        if target is not None:
            self._scroll_to(layout.row_index(target))
        return layout

    def _layout(self, region: str) -> HexLayout:
        """Diff against the last synced view; placeholder zeros are never a baseline."""

        renderer = self._renderers[region]
        if not self._store.is_synced(region):
            renderer.reset()
            layout = self._blank_layouts.get(region)
            if layout is None:
                layout = render_hexdump(self._store.snapshot(region), columns=renderer.columns)
                self._blank_layouts[region] = layout
            return layout
        return renderer.render(self._store.snapshot(region))

    def _on_store_event(self, event: StoreEvent) -> None:
        if event.pc_changed and self._region == VIDEO and self._transport is not None:
            self._transport.request_video_sync()

    # ------------------------------------------------------------------
    # Scrolling

    def _row_count(self) -> int:
        replica = self._store.replica(self._region)
        return (len(replica) + self._config.columns - 1) // self._config.columns

    def _max_top_row(self) -> int:
        return max(self._row_count() - self._config.visible_rows, 0)

    def _scroll_by(self, rows: int) -> None:
        self._target_row = min(max(self._target_row + rows, 0), self._max_top_row())
        self._scroll_row = float(self._target_row)

    def _scroll_to(self, row: int) -> None:
        """Ease the view so ``row`` ends up in the middle of the window."""

        top = row - self._config.visible_rows // 2
        self._target_row = min(max(top, 0), self._max_top_row())
        if debug_enabled("ui"):
            debug_log("ui", "scroll_to row=%d top=%d", row, self._target_row)

    def _advance_scroll(self) -> None:
        distance = self._target_row - self._scroll_row
        if abs(distance) < 0.5:
            self._scroll_row = float(self._target_row)
            return
        step = distance * _SCROLL_EASING
        if abs(step) < 1.0:
            step = 1.0 if distance > 0 else -1.0
        self._scroll_row += step

    # ------------------------------------------------------------------
    # Panels

    def status_lines(self) -> List[str]:
        status = self._store.snapshot_status()
        if status is None:
            return ["(no status)"]
        lines = [f"PC   {status.program_counter:04X}"]
        for register in status.registers:
            width = 4 if register.value > 0xFF else 2
            lines.append(f"{register.name.upper():<4} {register.value:0{width}X}")
        return lines

    def program_lines(self) -> List[tuple[str, bool]]:
        status = self._store.snapshot_status()
        pc = None if status is None else status.program_counter
        lines = []
        for entry in self._store.snapshot_program():
            text = f"{entry.address:04X}  {entry.raw_hex:<12} {entry.mnemonic}"
            lines.append((text[: self._config.program_columns], entry.address == pc))
        return lines

    def _draw(self, pygame, screen, layout: HexLayout) -> None:
        font = self._font
        screen.fill(_BACKGROUND)
        char_width, font_height = font.size("0")
        line_height = font_height + 2

        y = 2
        error = self._store.error
        banner = f"ERROR: {error}" if error else f"{self._region.upper()}  [s]tep [r]eset [F5] refresh [tab] memory/vram"
        screen.blit(font.render(banner, True, _ERROR if error else _DIM), (4, y))
        y += line_height * 2

        program_x = 4
        registers_x = program_x + (self._config.program_columns + 2) * char_width
        hex_x = registers_x + 20 * char_width

        for index, (text, selected) in enumerate(self.program_lines()[: self._config.visible_rows]):
            top = y + index * line_height
            if selected:
                pygame.draw.rect(screen, _SELECTED, (program_x - 2, top, self._config.program_columns * char_width + 4, line_height))
            screen.blit(font.render(text, True, _FOREGROUND), (program_x, top))

        for index, text in enumerate(self.status_lines()):
            screen.blit(font.render(text, True, _FOREGROUND), (registers_x, y + index * line_height))

        first_row = int(self._scroll_row)
        rows = layout.rows[first_row : first_row + self._config.visible_rows]
        for index, row in enumerate(rows):
            top = y + index * line_height
            screen.blit(font.render(row.label, True, _DIM), (hex_x, top))
            hex_start = hex_x + (len(row.label) + 2) * char_width
            ascii_start = hex_start + (self._config.columns * 3 + 1) * char_width
            for offset, cell in enumerate(row.cells):
                color = _FOREGROUND
                if cell.changed:
                    color = _FIRST_CHANGE if cell.address == layout.first_change else _CHANGED
                screen.blit(font.render(cell.hex, True, color), (hex_start + offset * 3 * char_width, top))
                screen.blit(font.render(cell.char, True, color), (ascii_start + offset * char_width, top))

    # ------------------------------------------------------------------
    # Session management

    def _create_transport(self) -> Transport:
        config = self._config
        return create_transport(
            config.transport,
            self._store,
            base_url=config.base_url,
            push_host=config.push_host,
            push_port=config.push_port,
        )

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise RuntimeError("transport not started")
        return self._transport

    def _reconnect(self, transport: Transport) -> None:
        if not isinstance(transport, PushTransport):
            transport.refresh()
            return
        for renderer in self._renderers.values():
            renderer.reset()
        try:
            transport.reconnect()
        except TransportError as exc:
            self._store.set_error(str(exc))

    # ------------------------------------------------------------------
    # Console debug menu

    def _enter_debug_shell(self) -> None:
        print("\n=== pymsxview Debug Menu ===")
        print("Enter command: [s]tatus, [p]rogram, [m]em, [v]ram, [h]istory, [q]uit, [Enter] resume")
        paused = True
        while paused and self._running:
            try:
                command = input("debug> ").strip().lower()
            except (EOFError, KeyboardInterrupt):
                print("Resuming inspector.")
                break

            if command == "" or command == "resume":
                paused = False
            elif command in {"s", "status"}:
                for line in self.status_lines():
                    print(line)
            elif command in {"p", "program"}:
                for text, selected in self.program_lines():
                    print(f"{'>' if selected else ' '} {text}")
            elif command.startswith("m"):
                self._dump_region(MEMORY, command[1:].strip() or None)
            elif command.startswith("v"):
                self._dump_region(VIDEO, command[1:].strip() or None)
            elif command in {"h", "hist", "history"}:
                self._dump_history()
            elif command in {"q", "quit", "exit"}:
                print("Exiting inspector.")
                self._running = False
                paused = False
            else:
                print("Commands: [Enter]=resume, [s]tatus, [p]rogram, [m]em, [v]ram, [h]istory, [q]uit")

    def _dump_region(self, region: str, spec: Optional[str]) -> None:
        def parse_value(text: str, default: int) -> int:
            text = text.strip()
            if not text:
                return default
            lowered = text.lower()
            if lowered.startswith("0x"):
                return int(lowered, 16)
            if any(c in "abcdef" for c in lowered):
                return int(lowered, 16)
            return int(lowered, 10)

        parts: Sequence[str] = spec.split() if spec else ()
        try:
            start = parse_value(parts[0], 0) if parts else 0
            length = parse_value(parts[1], 0x80) if len(parts) > 1 else 0x80
        except ValueError:
            print("Usage: m|v [start_hex] [length]")
            return
        if length <= 0:
            print("Length must be positive.")
            return

        layout = self._layout(region)
        first = layout.row_index(start)
        count = (length + layout.columns - 1) // layout.columns
        for row in layout.rows[first : first + count]:
            marker = "*" if row.has_change else " "
            print(f"{marker} {row.format()}")

    def _dump_history(self, limit: int = 32) -> None:
        lines = list(self._store.recorder.format_entries(limit))
        if not lines:
            print("Sync history is empty.")
            return
        print("Last sync events:")
        for line in lines:
            print(f"  {line}")


__all__ = ["AppConfig", "InspectorApp"]
