"""PySide6 windows for browsing and editing expenses through the REST API."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional

import requests
from PySide6 import QtCore, QtWidgets

from ..client import ApiError, ExpenseClient, SessionExpiredError, build_expense_payload
from . import presenters

LOG = logging.getLogger(__name__)

PAGE_SIZE = 20


class LoginDialog(QtWidgets.QDialog):
    """Sign-in and registration tabs; accepted once the client holds a token."""

    def __init__(self, client: ExpenseClient, parent: QtWidgets.QWidget | None = None) -> None:
        super().__init__(parent)
        self.client = client
        self.user: dict[str, Any] | None = None
        self.setWindowTitle("Expense Tracker · Sign in")
        self.setModal(True)

        layout = QtWidgets.QVBoxLayout(self)
        tabs = QtWidgets.QTabWidget()
        layout.addWidget(tabs)

        login_tab = QtWidgets.QWidget()
        login_form = QtWidgets.QFormLayout(login_tab)
        self.login_email = QtWidgets.QLineEdit()
        self.login_password = QtWidgets.QLineEdit()
        self.login_password.setEchoMode(QtWidgets.QLineEdit.Password)
        login_button = QtWidgets.QPushButton("Sign in")
        login_button.clicked.connect(self._login)
        login_form.addRow("Email", self.login_email)
        login_form.addRow("Password", self.login_password)
        login_form.addRow(login_button)
        tabs.addTab(login_tab, "Sign in")

        register_tab = QtWidgets.QWidget()
        register_form = QtWidgets.QFormLayout(register_tab)
        self.register_name = QtWidgets.QLineEdit()
        self.register_email = QtWidgets.QLineEdit()
        self.register_password = QtWidgets.QLineEdit()
        self.register_password.setEchoMode(QtWidgets.QLineEdit.Password)
        register_button = QtWidgets.QPushButton("Create account")
        register_button.clicked.connect(self._register)
        register_form.addRow("Name", self.register_name)
        register_form.addRow("Email", self.register_email)
        register_form.addRow("Password", self.register_password)
        register_form.addRow(register_button)
        tabs.addTab(register_tab, "Register")

    def _login(self) -> None:
        self._authenticate(
            lambda: self.client.login(self.login_email.text().strip(), self.login_password.text())
        )

    def _register(self) -> None:
        self._authenticate(
            lambda: self.client.register(
                self.register_name.text().strip(),
                self.register_email.text().strip(),
                self.register_password.text(),
            )
        )

    def _authenticate(self, action: Callable[[], dict[str, Any]]) -> None:
        try:
            self.user = action()
        except ApiError as exc:
            QtWidgets.QMessageBox.warning(self, "Authentication", _describe(exc))
            return
        except requests.RequestException as exc:
            QtWidgets.QMessageBox.critical(self, "Connection error", f"Could not reach the API.\n{exc}")
            return
        self.accept()


class ExpenseDialog(QtWidgets.QDialog):
    """Form used both to add a new expense and to edit an existing one."""

    def __init__(self, expense: Mapping[str, Any] | None = None, parent: QtWidgets.QWidget | None = None) -> None:
        super().__init__(parent)
        self.setWindowTitle("Edit expense" if expense else "Add expense")
        form = QtWidgets.QFormLayout(self)

        self.amount_spin = QtWidgets.QDoubleSpinBox()
        self.amount_spin.setRange(0, 1_000_000_000)
        self.amount_spin.setDecimals(2)
        self.amount_spin.setPrefix(presenters.CURRENCY)

        self.category_combo = QtWidgets.QComboBox()
        self.category_combo.addItems(presenters.CATEGORIES)

        self.payment_combo = QtWidgets.QComboBox()
        self.payment_combo.addItems(presenters.PAYMENT_MODES)

        self.date_edit = QtWidgets.QDateEdit(QtCore.QDate.currentDate())
        self.date_edit.setCalendarPopup(True)

        self.notes_edit = QtWidgets.QPlainTextEdit()
        self.notes_edit.setPlaceholderText("Notes (max 500 characters)")

        if expense:
            self.amount_spin.setValue(float(presenters.to_decimal(expense.get("amount", 0))))
            self.category_combo.setCurrentText(str(expense.get("category", "")))
            self.payment_combo.setCurrentText(str(expense.get("paymentMode", "")))
            self.date_edit.setDate(QtCore.QDate.fromString(presenters.format_date(expense["date"]), "yyyy-MM-dd"))
            self.notes_edit.setPlainText(str(expense.get("notes") or ""))

        buttons = QtWidgets.QDialogButtonBox(QtWidgets.QDialogButtonBox.Save | QtWidgets.QDialogButtonBox.Cancel)
        buttons.accepted.connect(self._validate_and_accept)
        buttons.rejected.connect(self.reject)

        form.addRow("Amount", self.amount_spin)
        form.addRow("Category", self.category_combo)
        form.addRow("Payment mode", self.payment_combo)
        form.addRow("Date", self.date_edit)
        form.addRow("Notes", self.notes_edit)
        form.addRow(buttons)

    def _validate_and_accept(self) -> None:
        if len(self.notes_edit.toPlainText()) > 500:
            QtWidgets.QMessageBox.warning(self, "Validation", "Notes must be less than 500 characters")
            return
        if self.amount_spin.value() <= 0:
            QtWidgets.QMessageBox.warning(self, "Validation", "Amount must be greater than 0")
            return
        self.accept()

    def payload(self) -> dict[str, Any]:
        picked = self.date_edit.date()
        return build_expense_payload(
            amount=Decimal(f"{self.amount_spin.value():.2f}"),
            category=self.category_combo.currentText(),
            payment_mode=self.payment_combo.currentText(),
            when=datetime(picked.year(), picked.month(), picked.day()),
            notes=self.notes_edit.toPlainText(),
        )


class ExpenseMainWindow(QtWidgets.QMainWindow):
    """Filters, paginated expense table and analytics for the signed-in user."""

    def __init__(self, client: ExpenseClient) -> None:
        super().__init__()
        self.client = client
        self.page = 1
        self.total_pages = 1

        self.setWindowTitle("Expense Tracker")
        self.resize(1100, 720)

        container = QtWidgets.QWidget()
        layout = QtWidgets.QVBoxLayout(container)
        layout.setContentsMargins(24, 24, 24, 24)
        layout.setSpacing(16)

        header = QtWidgets.QHBoxLayout()
        self.user_label = QtWidgets.QLabel()
        logout_button = QtWidgets.QPushButton("Log out")
        logout_button.clicked.connect(self.logout)
        header.addWidget(self.user_label)
        header.addStretch()
        header.addWidget(logout_button)
        layout.addLayout(header)

        self.summary_label = QtWidgets.QLabel()
        self.summary_label.setObjectName("SummaryLabel")
        layout.addWidget(self.summary_label)

        layout.addWidget(self._build_filters())

        tabs = QtWidgets.QTabWidget()
        tabs.addTab(self._build_expenses_tab(), "Expenses")
        tabs.addTab(self._build_analytics_tab(), "Analytics")
        layout.addWidget(tabs)

        self.setCentralWidget(container)
        QtCore.QTimer.singleShot(0, self._start)

    # ------------------------------------------------------------------
    def _build_filters(self) -> QtWidgets.QGroupBox:
        box = QtWidgets.QGroupBox("Filters")
        grid = QtWidgets.QGridLayout(box)

        self.date_filter_combo = QtWidgets.QComboBox()
        for value, label in presenters.DATE_FILTERS:
            self.date_filter_combo.addItem(label, value)
        grid.addWidget(QtWidgets.QLabel("Period"), 0, 0)
        grid.addWidget(self.date_filter_combo, 0, 1)

        self.category_checks = {name: QtWidgets.QCheckBox(name) for name in presenters.CATEGORIES}
        grid.addWidget(QtWidgets.QLabel("Categories"), 1, 0)
        for column, check in enumerate(self.category_checks.values(), start=1):
            grid.addWidget(check, 1, column)

        self.payment_checks = {name: QtWidgets.QCheckBox(name) for name in presenters.PAYMENT_MODES}
        grid.addWidget(QtWidgets.QLabel("Payment modes"), 2, 0)
        for column, check in enumerate(self.payment_checks.values(), start=1):
            grid.addWidget(check, 2, column)

        apply_button = QtWidgets.QPushButton("Apply")
        apply_button.clicked.connect(self._apply_filters)
        grid.addWidget(apply_button, 0, 6)
        return box

    def _build_expenses_tab(self) -> QtWidgets.QWidget:
        tab = QtWidgets.QWidget()
        layout = QtWidgets.QVBoxLayout(tab)

        self.table = QtWidgets.QTableWidget(0, len(presenters.EXPENSE_COLUMNS))
        self.table.setHorizontalHeaderLabels(list(presenters.EXPENSE_COLUMNS))
        self.table.horizontalHeader().setStretchLastSection(True)
        self.table.setSelectionBehavior(QtWidgets.QTableWidget.SelectRows)
        self.table.setEditTriggers(QtWidgets.QAbstractItemView.NoEditTriggers)
        self.table.setAlternatingRowColors(True)
        layout.addWidget(self.table)

        controls = QtWidgets.QHBoxLayout()
        add_button = QtWidgets.QPushButton("Add expense")
        add_button.clicked.connect(self.add_expense)
        edit_button = QtWidgets.QPushButton("Edit selected")
        edit_button.clicked.connect(self.edit_selected)
        delete_button = QtWidgets.QPushButton("Delete selected")
        delete_button.setObjectName("DangerButton")
        delete_button.clicked.connect(self.delete_selected)
        self.prev_button = QtWidgets.QPushButton("‹ Previous")
        self.prev_button.clicked.connect(lambda: self._go_to_page(self.page - 1))
        self.next_button = QtWidgets.QPushButton("Next ›")
        self.next_button.clicked.connect(lambda: self._go_to_page(self.page + 1))
        self.page_label = QtWidgets.QLabel()
        for widget in (add_button, edit_button, delete_button):
            controls.addWidget(widget)
        controls.addStretch()
        for widget in (self.prev_button, self.page_label, self.next_button):
            controls.addWidget(widget)
        layout.addLayout(controls)
        return tab

    def _build_analytics_tab(self) -> QtWidgets.QWidget:
        tab = QtWidgets.QWidget()
        layout = QtWidgets.QVBoxLayout(tab)
        self.breakdown_table = QtWidgets.QTableWidget(0, 3)
        self.breakdown_table.setHorizontalHeaderLabels(["Category", "Transactions", "Total"])
        self.breakdown_table.horizontalHeader().setStretchLastSection(True)
        self.monthly_table = QtWidgets.QTableWidget(0, 3)
        self.monthly_table.setHorizontalHeaderLabels(["Month", "Categories", "Total"])
        self.monthly_table.horizontalHeader().setStretchLastSection(True)
        layout.addWidget(QtWidgets.QLabel("By category"))
        layout.addWidget(self.breakdown_table)
        layout.addWidget(QtWidgets.QLabel("By month"))
        layout.addWidget(self.monthly_table)
        return tab

    # ------------------------------------------------------------------
    def _start(self) -> None:
        if not self.client.is_authenticated and not self._prompt_login():
            self.close()
            return
        self.refresh()

    def _prompt_login(self) -> bool:
        dialog = LoginDialog(self.client, self)
        return dialog.exec() == QtWidgets.QDialog.Accepted

    def _call(self, action: Callable[[], Any]) -> Optional[Any]:
        """Run an API call, sending the user back to the login dialog on 401."""

        try:
            return action()
        except SessionExpiredError:
            QtWidgets.QMessageBox.information(self, "Session expired", "Please sign in again.")
            if self._prompt_login():
                self.refresh()
            else:
                self.close()
        except ApiError as exc:
            QtWidgets.QMessageBox.warning(self, "Error", _describe(exc))
        except requests.RequestException as exc:
            QtWidgets.QMessageBox.critical(
                self,
                "Connection error",
                f"Could not connect to the API.\n{exc}\n\nMake sure the server is running.",
            )
        return None

    def _filter_arguments(self) -> dict[str, Any]:
        return {
            "date_filter": self.date_filter_combo.currentData(),
            "categories": presenters.selected_values(
                [(name, check.isChecked()) for name, check in self.category_checks.items()]
            ),
            "payment_modes": presenters.selected_values(
                [(name, check.isChecked()) for name, check in self.payment_checks.items()]
            ),
        }

    def refresh(self) -> None:
        profile = self._call(self.client.profile)
        if profile is None:
            return
        self.user_label.setText(f"Signed in as {profile['name']} ({profile['email']})")
        self.refresh_expenses()
        self.refresh_analytics()

    def refresh_expenses(self) -> None:
        result = self._call(
            lambda: self.client.list_expenses(page=self.page, limit=PAGE_SIZE, **self._filter_arguments())
        )
        if result is None:
            return
        self.table.setRowCount(0)
        for expense_id, cells in presenters.expense_rows(result["items"]):
            row = self.table.rowCount()
            self.table.insertRow(row)
            for column, text in enumerate(cells):
                item = QtWidgets.QTableWidgetItem(text)
                if column == 0:
                    # The backend needs the database id; keep it on the first cell.
                    item.setData(QtCore.Qt.UserRole, expense_id)
                if column == len(cells) - 1:
                    item.setTextAlignment(QtCore.Qt.AlignRight | QtCore.Qt.AlignVCenter)
                self.table.setItem(row, column, item)
            self.table.setRowHeight(row, 36)
        pagination = result["pagination"]
        self.total_pages = max(int(pagination["totalPages"]), 1)
        self.page_label.setText(presenters.page_label(pagination))
        self.prev_button.setEnabled(self.page > 1)
        self.next_button.setEnabled(self.page < self.total_pages)

    def refresh_analytics(self) -> None:
        analytics = self._call(self.client.analytics)
        if analytics is None:
            return
        self.summary_label.setText(presenters.summary_text(analytics))
        _fill_table(self.breakdown_table, presenters.breakdown_rows(analytics))
        _fill_table(self.monthly_table, presenters.monthly_rows(analytics))

    def _apply_filters(self) -> None:
        self.page = 1
        self.refresh_expenses()

    def _go_to_page(self, page: int) -> None:
        if 1 <= page <= self.total_pages:
            self.page = page
            self.refresh_expenses()

    def _selected_expense_id(self) -> Optional[int]:
        selected_rows = self.table.selectionModel().selectedRows()
        if not selected_rows:
            QtWidgets.QMessageBox.information(self, "Expenses", "Select a row first")
            return None
        return self.table.item(selected_rows[0].row(), 0).data(QtCore.Qt.UserRole)

    def add_expense(self) -> None:
        dialog = ExpenseDialog(parent=self)
        if dialog.exec() != QtWidgets.QDialog.Accepted:
            return
        if self._call(lambda: self.client.create_expense(dialog.payload())) is not None:
            self.refresh_expenses()
            self.refresh_analytics()

    def edit_selected(self) -> None:
        expense_id = self._selected_expense_id()
        if expense_id is None:
            return
        expense = self._call(lambda: self.client.get_expense(expense_id))
        if expense is None:
            return
        dialog = ExpenseDialog(expense, parent=self)
        if dialog.exec() != QtWidgets.QDialog.Accepted:
            return
        if self._call(lambda: self.client.update_expense(expense_id, dialog.payload())) is not None:
            self.refresh_expenses()
            self.refresh_analytics()

    def delete_selected(self) -> None:
        expense_id = self._selected_expense_id()
        if expense_id is None:
            return
        confirm = QtWidgets.QMessageBox.question(
            self,
            "Confirm delete",
            "Delete the selected expense?",
            QtWidgets.QMessageBox.Yes | QtWidgets.QMessageBox.No,
        )
        if confirm != QtWidgets.QMessageBox.Yes:
            return
        self._call(lambda: self.client.delete_expense(expense_id))
        self.refresh_expenses()
        self.refresh_analytics()

    def logout(self) -> None:
        try:
            self.client.logout()
        except (ApiError, requests.RequestException) as exc:
            LOG.info("Logout request failed, token discarded anyway: %s", exc)
        self.table.setRowCount(0)
        if self._prompt_login():
            self.page = 1
            self.refresh()
        else:
            self.close()


def _fill_table(table: QtWidgets.QTableWidget, rows: list[list[str]]) -> None:
    table.setRowCount(0)
    for cells in rows:
        row = table.rowCount()
        table.insertRow(row)
        for column, text in enumerate(cells):
            table.setItem(row, column, QtWidgets.QTableWidgetItem(text))


def _describe(exc: ApiError) -> str:
    lines = [exc.message]
    for detail in exc.details:
        if isinstance(detail, Mapping):
            lines.append(f"• {detail.get('field', '')}: {detail.get('message', '')}")
        else:
            lines.append(f"• {detail}")
    return "\n".join(lines)
