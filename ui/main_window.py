from __future__ import annotations

import os
import re
import sys
from typing import List, Optional

from PyQt6.QtCore import QRect, QSize, Qt, QTimer
from PyQt6.QtGui import (
    QAction,
    QColor,
    QFont,
    QFontDatabase,
    QKeySequence,
    QPainter,
    QShortcut,
    QSyntaxHighlighter,
    QTextCharFormat,
    QTextCursor,
)
from PyQt6.QtWidgets import (
    QApplication,
    QFileDialog,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QLineEdit,
    QMainWindow,
    QMessageBox,
    QPlainTextEdit,
    QSpinBox,
    QSplitter,
    QStatusBar,
    QTableWidget,
    QTableWidgetItem,
    QTabWidget,
    QTextEdit,
    QVBoxLayout,
    QWidget,
)

from core.assembler import Assembler
from core.cpu import CPUState
from core.emulator import Emulator, StepOutcome
from core.errors import AssemblyError
from core.instructions import get_instruction_defs, mnemonic_for
from core.model import Program
from core.profile import MachineProfile, ProfileError, load_default, load_profile
from core.symbols import SymbolTable


MEMORY_COLUMNS = 10
GUTTER_BG = QColor("#1e1f29")
GUTTER_FG = QColor("#6272a4")
THEME = """
QWidget { background-color: #1e1f29; color: #f8f8f2; }
QPlainTextEdit { background-color: #282a36; selection-background-color: #44475a; }
QTableWidget { gridline-color: #3c3f58; }
QHeaderView::section { background-color: #3c3f58; padding: 4px; }
"""
INPUT_SPLIT_RE = re.compile(r"[\s,]+")


def fixed_font() -> QFont:
    font = QFontDatabase.systemFont(QFontDatabase.SystemFont.FixedFont)
    font.setPointSize(11)
    return font


def parse_inputs(text: str) -> List[int]:
    return [int(part, 10) for part in INPUT_SPLIT_RE.split(text.strip()) if part]


class AsmHighlighter(QSyntaxHighlighter):
    def __init__(self, parent) -> None:
        super().__init__(parent)
        self.mnemonic_format = QTextCharFormat()
        self.mnemonic_format.setForeground(QColor("#ff79c6"))
        self.mnemonic_format.setFontWeight(QFont.Weight.Bold)

        self.label_format = QTextCharFormat()
        self.label_format.setForeground(QColor("#50fa7b"))

        self.number_format = QTextCharFormat()
        self.number_format.setForeground(QColor("#ffb86c"))

        self.mnemonics = {d.mnemonic for d in get_instruction_defs()}

    def highlightBlock(self, text: str) -> None:
        for match in re.finditer(r"\S+", text):
            token = match.group(0)
            start, length = match.start(), len(token)
            if token in self.mnemonics:
                self.setFormat(start, length, self.mnemonic_format)
            elif re.fullmatch(r"[+-]?\d+", token):
                self.setFormat(start, length, self.number_format)
            elif start == len(text) - len(text.lstrip()):
                self.setFormat(start, length, self.label_format)


class LineNumberArea(QWidget):
    def __init__(self, editor: "CodeEditor") -> None:
        super().__init__(editor)
        self.editor = editor

    def sizeHint(self) -> QSize:
        return QSize(self.editor.line_number_area_width(), 0)

    def paintEvent(self, event) -> None:
        self.editor.line_number_area_paint_event(event)


class CodeEditor(QPlainTextEdit):
    """Source editor whose gutter shows the memory address of every line."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.line_number_area = LineNumberArea(self)

        self.blockCountChanged.connect(self.update_line_number_area_width)
        self.updateRequest.connect(self.update_line_number_area)
        self.update_line_number_area_width(0)

    def line_number_area_width(self) -> int:
        digits = max(2, len(str(self.blockCount())))
        return 12 + self.fontMetrics().horizontalAdvance("9") * digits

    def update_line_number_area_width(self, _block_count: int) -> None:
        self.setViewportMargins(self.line_number_area_width(), 0, 0, 0)

    def update_line_number_area(self, rect: QRect, dy: int) -> None:
        if dy:
            self.line_number_area.scroll(0, dy)
        else:
            self.line_number_area.update(0, rect.y(), self.line_number_area.width(), rect.height())
        if rect.contains(self.viewport().rect()):
            self.update_line_number_area_width(0)

    def resizeEvent(self, event) -> None:
        super().resizeEvent(event)
        contents = self.contentsRect()
        self.line_number_area.setGeometry(
            QRect(contents.left(), contents.top(), self.line_number_area_width(), contents.height())
        )

    def line_number_area_paint_event(self, event) -> None:
        painter = QPainter(self.line_number_area)
        painter.fillRect(event.rect(), GUTTER_BG)

        block = self.firstVisibleBlock()
        block_number = block.blockNumber()
        top = self.blockBoundingGeometry(block).translated(self.contentOffset()).top()
        bottom = top + self.blockBoundingRect(block).height()

        while block.isValid() and top <= event.rect().bottom():
            if block.isVisible() and bottom >= event.rect().top():
                painter.setPen(GUTTER_FG)
                painter.drawText(
                    0,
                    int(top),
                    self.line_number_area.width() - 6,
                    int(self.fontMetrics().height()),
                    Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter,
                    f"{block_number:02d}",
                )
            block = block.next()
            top = bottom
            bottom = top + self.blockBoundingRect(block).height()
            block_number += 1


class MainWindow(QMainWindow):
    def __init__(self, profile: Optional[MachineProfile] = None) -> None:
        super().__init__()
        self.setWindowTitle("Decimal Debugger")
        self.resize(1200, 720)

        self.current_file: Optional[str] = None
        self.source_dirty = True
        self.run_state = "Ready"
        self.prev_memory: List[int] = []

        self.profile = profile or load_default()
        self.program = Program(memory=[0] * self.profile.memory_size, symbols=SymbolTable())
        self.cpu = CPUState(memory_size=self.profile.memory_size)
        self.emulator = Emulator(self.cpu, self.profile)

        self.timer = QTimer(self)
        self.timer.timeout.connect(self.on_timer_step)

        self._build_ui()
        self._setup_shortcuts()
        self._update_views()

    def _setup_shortcuts(self) -> None:
        self.shortcuts: list[QShortcut] = []
        shortcut_map = [
            ("F5", self.play),
            ("Shift+F5", self.pause),
            ("F7", self.parse_current_program),
            ("F10", self.step_once),
            ("Ctrl+Shift+F5", self.reset_state),
            ("Ctrl+O", self.open_file),
            ("Ctrl+S", self.save_file),
        ]
        for sequence, handler in shortcut_map:
            shortcut = QShortcut(QKeySequence(sequence), self)
            shortcut.activated.connect(handler)
            self.shortcuts.append(shortcut)

    def _build_ui(self) -> None:
        file_menu = self.menuBar().addMenu("File")
        machine_menu = self.menuBar().addMenu("Machine")

        for title, handler in (
            ("New", self.new_file),
            ("Open", self.open_file),
            ("Save", self.save_file),
            ("Save As", self.save_file_as),
            ("Exit", self.close),
        ):
            action = QAction(title, self)
            action.triggered.connect(handler)
            file_menu.addAction(action)

        profile_action = QAction("Load Profile...", self)
        profile_action.triggered.connect(self.choose_profile)
        machine_menu.addAction(profile_action)
        clear_action = QAction("Clear Output", self)
        clear_action.triggered.connect(self.clear_output)
        machine_menu.addAction(clear_action)

        left_panel = QWidget()
        left_layout = QVBoxLayout(left_panel)
        left_layout.setContentsMargins(8, 8, 8, 8)
        left_tabs = QTabWidget()
        left_tabs.addTab(self._build_instruction_tab(), "Instructions")
        left_tabs.addTab(self._build_symbol_tab(), "Symbols")
        left_layout.addWidget(left_tabs)
        left_panel.setMinimumWidth(220)

        center_panel = QWidget()
        center_layout = QVBoxLayout(center_panel)
        center_layout.setContentsMargins(8, 8, 8, 8)
        center_layout.addWidget(QLabel("Assembly Editor"))
        center_layout.addWidget(self._build_center_controls())
        self.editor = CodeEditor()
        self.editor.setFont(fixed_font())
        self.editor.textChanged.connect(self.on_text_changed)
        self.highlighter = AsmHighlighter(self.editor.document())
        center_layout.addWidget(self.editor)
        center_layout.addLayout(self._build_editor_footer())

        right_panel = QWidget()
        right_layout = QVBoxLayout(right_panel)
        right_layout.setContentsMargins(8, 8, 8, 8)
        right_layout.addWidget(QLabel("Registers"))
        self.register_table = QTableWidget(4, 2)
        self.register_table.setHorizontalHeaderLabels(["Register", "Value"])
        self.register_table.verticalHeader().setVisible(False)
        self.register_table.setEditTriggers(QTableWidget.EditTrigger.NoEditTriggers)
        self.register_table.setFont(fixed_font())
        self.register_table.horizontalHeader().setStretchLastSection(True)
        right_layout.addWidget(self.register_table)
        right_layout.addWidget(QLabel("Memory"))
        rows = (self.profile.memory_size + MEMORY_COLUMNS - 1) // MEMORY_COLUMNS
        self.memory_table = QTableWidget(rows, MEMORY_COLUMNS)
        self.memory_table.setHorizontalHeaderLabels([str(col) for col in range(MEMORY_COLUMNS)])
        self.memory_table.setVerticalHeaderLabels([f"{row * MEMORY_COLUMNS:02d}" for row in range(rows)])
        self.memory_table.setEditTriggers(QTableWidget.EditTrigger.NoEditTriggers)
        self.memory_table.setFont(fixed_font())
        self.memory_table.horizontalHeader().setSectionResizeMode(QHeaderView.ResizeMode.Stretch)
        right_layout.addWidget(self.memory_table, 1)
        right_panel.setMinimumWidth(380)

        central_splitter = QSplitter(Qt.Orientation.Horizontal)
        central_splitter.setChildrenCollapsible(False)
        central_splitter.addWidget(left_panel)
        central_splitter.addWidget(center_panel)
        central_splitter.addWidget(right_panel)
        central_splitter.setStretchFactor(0, 1)
        central_splitter.setStretchFactor(1, 3)
        central_splitter.setStretchFactor(2, 2)
        central_splitter.setSizes([240, 560, 400])

        self.program_output = QPlainTextEdit()
        self.program_output.setReadOnly(True)
        self.program_output.setFont(fixed_font())
        self.log_output = QPlainTextEdit()
        self.log_output.setReadOnly(True)
        self.log_output.setFont(fixed_font())

        output_tabs = QTabWidget()
        output_tabs.addTab(self.program_output, "Output")
        output_tabs.addTab(self.log_output, "Log")

        main_splitter = QSplitter(Qt.Orientation.Vertical)
        main_splitter.setChildrenCollapsible(False)
        main_splitter.addWidget(central_splitter)
        main_splitter.addWidget(output_tabs)
        main_splitter.setStretchFactor(0, 3)
        main_splitter.setStretchFactor(1, 1)
        main_splitter.setSizes([520, 200])

        container = QWidget()
        container_layout = QVBoxLayout(container)
        container_layout.setContentsMargins(10, 10, 10, 10)
        container_layout.addWidget(main_splitter)
        self.setCentralWidget(container)

        status = QStatusBar()
        self.setStatusBar(status)
        self.state_label = QLabel("Ready")
        self.line_label = QLabel("PC: -")
        self.profile_label = QLabel(self.profile.name)
        status.addWidget(self.state_label)
        status.addPermanentWidget(self.profile_label)
        status.addPermanentWidget(self.line_label)

        self.setStyleSheet(THEME)

    def _build_center_controls(self) -> QWidget:
        widget = QWidget()
        layout = QHBoxLayout(widget)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(12)

        for text, tooltip, handler in (
            ("Assemble", "Assemble (F7)", self.parse_current_program),
            ("Run", "Run (F5)", self.play),
            ("Pause", "Pause (Shift+F5)", self.pause),
            ("Step", "Step (F10)", self.step_once),
            ("Reset", "Reset (Ctrl+Shift+F5)", self.reset_state),
        ):
            button = QToolButton()
            button.setText(text)
            button.setToolTip(tooltip)
            button.clicked.connect(handler)
            layout.addWidget(button)

        layout.addWidget(QLabel("Input"))
        self.input_edit = QLineEdit()
        self.input_edit.setPlaceholderText("e.g. 7, 12, -3")
        self.input_edit.editingFinished.connect(self.on_text_changed)
        layout.addWidget(self.input_edit, 1)
        return widget

    def _build_editor_footer(self) -> QHBoxLayout:
        layout = QHBoxLayout()
        layout.setContentsMargins(0, 8, 0, 0)
        layout.addStretch(1)
        layout.addWidget(QLabel("Steps/s"))
        self.rate_spin = QSpinBox()
        self.rate_spin.setRange(1, 1000)
        self.rate_spin.setValue(5)
        self.rate_spin.valueChanged.connect(self._update_timer_interval)
        layout.addWidget(self.rate_spin)
        return layout

    def _build_instruction_tab(self) -> QWidget:
        widget = QWidget()
        layout = QVBoxLayout(widget)
        layout.setContentsMargins(0, 0, 0, 0)
        defs = get_instruction_defs()
        self.instruction_table = QTableWidget(len(defs), 4)
        self.instruction_table.setHorizontalHeaderLabels(["Mnemonic", "Word", "Syntax", "Summary"])
        self.instruction_table.verticalHeader().setVisible(False)
        self.instruction_table.setEditTriggers(QTableWidget.EditTrigger.NoEditTriggers)
        self.instruction_table.setSelectionBehavior(QTableWidget.SelectionBehavior.SelectRows)
        self.instruction_table.setFont(fixed_font())
        self.instruction_table.horizontalHeader().setStretchLastSection(True)
        for row, defn in enumerate(defs):
            self.instruction_table.setItem(row, 0, QTableWidgetItem(defn.mnemonic))
            self.instruction_table.setItem(row, 1, QTableWidgetItem(f"{int(defn.value):03d}"))
            self.instruction_table.setItem(row, 2, QTableWidgetItem(defn.syntax))
            self.instruction_table.setItem(row, 3, QTableWidgetItem(defn.summary))
        layout.addWidget(self.instruction_table)
        return widget

    def _build_symbol_tab(self) -> QWidget:
        self.symbol_table = QTableWidget(0, 3)
        self.symbol_table.setHorizontalHeaderLabels(["Symbol", "Kind", "Value"])
        self.symbol_table.verticalHeader().setVisible(False)
        self.symbol_table.setEditTriggers(QTableWidget.EditTrigger.NoEditTriggers)
        self.symbol_table.setSelectionBehavior(QTableWidget.SelectionBehavior.SelectRows)
        self.symbol_table.setFont(fixed_font())
        self.symbol_table.horizontalHeader().setStretchLastSection(True)
        return self.symbol_table

    def _set_current_file(self, path: Optional[str]) -> None:
        self.current_file = os.path.abspath(path) if path else None
        if self.current_file:
            self.setWindowTitle(f"Decimal Debugger - {self.current_file}")
        else:
            self.setWindowTitle("Decimal Debugger")

    def _open_file_path(self, path: str) -> bool:
        try:
            with open(path, "r", encoding="utf-8") as file:
                self.editor.setPlainText(file.read())
        except (OSError, UnicodeDecodeError) as exc:
            QMessageBox.warning(self, "Open Failed", str(exc))
            return False
        self._set_current_file(path)
        self.source_dirty = True
        self.log(f"Opened {path}")
        return True

    def on_text_changed(self) -> None:
        self.source_dirty = True

    def new_file(self) -> None:
        self.editor.clear()
        self._set_current_file(None)
        self.source_dirty = True
        self.log("New file created.")

    def open_file(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Open .asm", "", "ASM Files (*.asm);;All Files (*)")
        if not path:
            return
        self._open_file_path(path)

    def save_file(self) -> None:
        if not self.current_file:
            self.save_file_as()
            return
        try:
            with open(self.current_file, "w", encoding="utf-8") as file:
                file.write(self.editor.toPlainText())
            self.log(f"Saved {self.current_file}")
        except OSError as exc:
            QMessageBox.warning(self, "Save Failed", str(exc))

    def save_file_as(self) -> None:
        path, _ = QFileDialog.getSaveFileName(self, "Save .asm", "", "ASM Files (*.asm);;All Files (*)")
        if not path:
            return
        self._set_current_file(path)
        self.save_file()

    def choose_profile(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Load Profile", "", "Profiles (*.json);;All Files (*)")
        if not path:
            return
        try:
            self.profile = load_profile(path)
        except ProfileError as exc:
            QMessageBox.warning(self, "Invalid Profile", exc.message)
            return
        self.profile_label.setText(self.profile.name)
        rows = (self.profile.memory_size + MEMORY_COLUMNS - 1) // MEMORY_COLUMNS
        self.memory_table.setRowCount(rows)
        self.memory_table.setVerticalHeaderLabels([f"{row * MEMORY_COLUMNS:02d}" for row in range(rows)])
        self.source_dirty = True
        self.log(f"Loaded profile {self.profile.name}")

    def parse_current_program(self) -> bool:
        self.timer.stop()
        try:
            inputs = parse_inputs(self.input_edit.text())
        except ValueError:
            self.set_state("Error")
            self.log(f"Invalid input list: {self.input_edit.text()}")
            return False
        try:
            program = Assembler(self.profile).assemble(self.editor.toPlainText())
        except AssemblyError as exc:
            self.set_state("Error")
            self.log(f"Assembly error (line {exc.line_no}): {exc.message}")
            if exc.text:
                self.log(f"  {exc.text}")
            return False

        self.program = program
        self.emulator = Emulator.for_program(program, inputs, self.profile)
        self.cpu = self.emulator.cpu
        self.prev_memory = list(self.cpu.memory)
        self.source_dirty = False
        self._populate_symbols()
        self.set_state("Ready")
        self.log(f"Assembled {program.line_count} lines, {len(program.labels)} labels.")
        self._update_views()
        return True

    def ensure_program(self) -> bool:
        if self.source_dirty:
            return self.parse_current_program()
        return True

    def play(self) -> None:
        if not self.ensure_program():
            return
        if self.emulator.halted:
            self.log("Execution halted. Reset to run again.")
            return
        self.set_state("Running")
        self._update_timer_interval()
        self.timer.start()

    def pause(self) -> None:
        self.timer.stop()
        if self.run_state == "Running":
            self.set_state("Paused")

    def step_once(self) -> None:
        self.timer.stop()
        if not self.ensure_program():
            return
        if self.emulator.halted:
            self.log("Execution halted. Reset to run again.")
            self.set_state("Halted")
            return
        outcome = self.emulator.step()
        self.handle_step_outcome(outcome)
        self._update_views()
        if not outcome.error and not outcome.halted:
            self.set_state("Paused")

    def on_timer_step(self) -> None:
        outcome = self.emulator.step()
        self.handle_step_outcome(outcome)
        self._update_views()
        if outcome.error or outcome.halted:
            self.timer.stop()

    def handle_step_outcome(self, outcome: StepOutcome) -> None:
        if outcome.output is not None:
            self.program_output.moveCursor(QTextCursor.MoveOperation.End)
            self.program_output.insertPlainText(outcome.output)
        if outcome.error:
            self.set_state("Error")
            self.log(f"HALT due to error: {outcome.error.message}")
            return
        if outcome.halted:
            self.set_state("Halted")
            self.log("Program halted.")

    def reset_state(self) -> None:
        self.timer.stop()
        if self.source_dirty:
            self.parse_current_program()
            return
        self.emulator.reset()
        self.prev_memory = list(self.cpu.memory)
        self.set_state("Ready")
        self._update_views()
        self.log("CPU state reset.")

    def _update_timer_interval(self) -> None:
        steps = self.rate_spin.value()
        self.timer.setInterval(max(1, int(1000 / steps)))

    def _update_views(self) -> None:
        self._update_register_view()
        self._update_memory_view()
        self._highlight_current_line()
        self._update_status()

    def _update_register_view(self) -> None:
        rows = [
            ("PC", str(self.cpu.program_counter)),
            ("ACC", str(self.cpu.accumulator)),
            ("Input", f"{self.cpu.input_cursor}/{len(self.cpu.inputs)}"),
            ("State", self.emulator.status.value),
        ]
        for row, (name, value) in enumerate(rows):
            self.register_table.setItem(row, 0, QTableWidgetItem(name))
            self.register_table.setItem(row, 1, QTableWidgetItem(value))

    def _update_memory_view(self) -> None:
        pc = self.cpu.program_counter
        for addr, word in enumerate(self.cpu.memory):
            item = QTableWidgetItem(f"{word:03d}" if word >= 0 else str(word))
            item.setTextAlignment(Qt.AlignmentFlag.AlignCenter)
            mnemonic = mnemonic_for(word)
            item.setToolTip(f"{addr:02d}: {word} {mnemonic or '?'}")
            if addr == pc:
                item.setBackground(QColor("#fff2cc"))
                item.setForeground(QColor("#1e1f29"))
            elif addr < len(self.prev_memory) and self.prev_memory[addr] != word:
                item.setBackground(QColor("#ffb86c"))
                item.setForeground(QColor("#1a1b26"))
            self.memory_table.setItem(addr // MEMORY_COLUMNS, addr % MEMORY_COLUMNS, item)
        self.prev_memory = list(self.cpu.memory)

    def _populate_symbols(self) -> None:
        entries = list(self.program.symbols)
        self.symbol_table.setRowCount(len(entries))
        for row, entry in enumerate(entries):
            self.symbol_table.setItem(row, 0, QTableWidgetItem(entry.name))
            self.symbol_table.setItem(row, 1, QTableWidgetItem(entry.kind.value))
            self.symbol_table.setItem(row, 2, QTableWidgetItem(str(entry.value)))

    def _highlight_current_line(self) -> None:
        selections = []
        line = self.program.line_for_address(self.cpu.program_counter)
        if line is not None and not self.emulator.halted:
            block = self.editor.document().findBlockByNumber(line.line_no - 1)
            if block.isValid():
                cursor = QTextCursor(block)
                cursor.select(QTextCursor.SelectionType.LineUnderCursor)
                selection = QTextEdit.ExtraSelection()
                selection.cursor = cursor
                selection.format.setBackground(QColor("#fff2cc"))
                selection.format.setForeground(QColor("#1e1f29"))
                selections.append(selection)
        self.editor.setExtraSelections(selections)

    def _update_status(self) -> None:
        self.state_label.setText(self.run_state)
        self.line_label.setText(f"PC: {self.cpu.program_counter} | ACC: {self.cpu.accumulator}")

    def set_state(self, state: str) -> None:
        self.run_state = state
        self._update_status()

    def log(self, message: str) -> None:
        self.log_output.appendPlainText(message)

    def clear_output(self) -> None:
        self.program_output.clear()
        self.log_output.clear()


def main(argv: Optional[List[str]] = None) -> int:
    app = QApplication(argv if argv is not None else sys.argv)
    window = MainWindow()
    window.show()
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
