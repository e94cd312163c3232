"""
================================================================================
Fake HRM Application
================================================================================

Simulates the HRM pages the page objects drive (login, dashboard, System
Users list, Add/Edit User form) on top of `FakePage`.

The markup mirrors the real application closely enough for the descriptors
in `testsuites.ui_testing.pages.elements` to resolve, and the asynchronous
parts are simulated with short delays:

    - login outcome arrives after a server round trip
    - employee suggestions show "Searching...." before the results
    - the users grid shows a loader while it reloads, then answers the
      users API request (`loader_lag_s` delays the loader)

Failure knobs (`accept_saves`, `employees`, ...) let tests steer the app.

================================================================================
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set

from testsuites.ui_testing.pages import elements as el

from testsuites.unit.fake_page import FakeNode, FakePage

BASE_URL = "http://hrm.test/web/index.php"


def input_group(label: str, *controls: FakeNode, css=()) -> FakeNode:
    return FakeNode(
        "div",
        css={".oxd-input-group", f'.oxd-input-group:has(label:text-is("{label}"))', *css},
        children=[FakeNode("label", text=label), *controls],
    )


def button(name: str, on_click: Callable[[FakeNode], None], css=()) -> FakeNode:
    return FakeNode("button", role="button", text=name, css={f'button:has-text("{name}")', *css}, on_click=on_click)


@dataclass
class StoredUser:
    id: int
    username: str
    password: str
    role: str
    employee_name: str
    status: str


@dataclass
class UserForm:
    """Values currently entered in the Add / Edit User form."""
    user_id: Optional[int] = None
    role: str = "-- Select --"
    status: str = "-- Select --"
    employee_input: str = ""
    employee_selected: Optional[str] = None
    suggestions: Optional[List[str]] = None
    searching: bool = False
    username: str = ""
    password: str = ""
    confirm: str = ""
    change_password: bool = False
    open_select: Optional[str] = None
    errors: List[str] = field(default_factory=list)


class FakeHrmApp:
    """In-memory HRM application rendering into a `FakePage`."""

    def __init__(
        self,
        page: Optional[FakePage] = None,
        username: str = "Admin",
        password: str = "admin123",
        employees: Optional[List[str]] = None,
        delay_s: float = 0.02,
    ):
        self.page = page or FakePage()
        self.page.router = self.load
        self.credentials = (username, password)
        self.employees = employees if employees is not None else ["Jane Doe", "John Smith"]
        self.delay_s = delay_s

        self.logged_in = False
        self.view = "blank"
        self.users: List[StoredUser] = [
            StoredUser(1, username, password, "Admin", "Paul Collings", "Enabled"),
        ]
        self._next_id = 2

        self.login_values = {"username": "", "password": ""}
        self.login_error: Optional[str] = None
        self.required_errors = False
        self.user_menu_open = False

        self.filter_input = ""
        self.applied_filter = ""
        self.grid_loading = False
        self.selected: Set[int] = set()
        self._grid_requests = 0
        self._loaded_request = 0
        self.dialog_open = False
        self.toast: Optional[str] = None
        self.form = UserForm()

        # Knobs
        self.accept_saves = True
        self.accept_logins = True
        self.loader_lag_s = 0.0
        self.deleted: List[str] = []
        self.saved: List[str] = []

    # =========================================================================
    # Routing
    # =========================================================================

    @property
    def url(self) -> str:
        return self.page.url

    def _go(self, path: str) -> None:
        """In-app navigation; an open toast stays on screen."""
        self.page.url = f"{BASE_URL}{path}"
        self.route(self.page.url)

    def load(self, url: str) -> None:
        """Full page load (goto / reload)."""
        self.toast = None
        self.route(url)

    def route(self, url: str) -> None:
        path = url[len(BASE_URL):] if url.startswith(BASE_URL) else url
        self.user_menu_open = False
        self.dialog_open = False

        if not self.logged_in or path in ("", "/", "/auth/login"):
            if self.logged_in:
                self.page.url = f"{BASE_URL}/dashboard/index"
                self.view = "dashboard"
            else:
                self.page.url = f"{BASE_URL}/auth/login"
                self.view = "login"
        elif path.startswith("/dashboard"):
            self.view = "dashboard"
        elif path.startswith("/admin/viewSystemUsers"):
            self.view = "list"
            self.selected.clear()
            self.filter_input = self.applied_filter = ""
            self.grid_loading = False
        elif re.match(r"^/admin/saveSystemUser/(\d+)$", path):
            user = self._user_by_id(int(path.rsplit("/", 1)[1]))
            self.view = "edit"
            self.form = UserForm(
                user_id=user.id,
                role=user.role,
                status=user.status,
                employee_input=user.employee_name,
                employee_selected=user.employee_name,
                username=user.username,
            )
        elif path.startswith("/admin/saveSystemUser"):
            self.view = "add"
            self.form = UserForm()
        else:
            self.view = "dashboard"
        self.render()

    def _user_by_id(self, user_id: int) -> StoredUser:
        return next(u for u in self.users if u.id == user_id)

    def _later(self, action: Callable[[], None]) -> None:
        def run() -> None:
            action()
            self.render()

        if self.delay_s <= 0:
            run()
        else:
            asyncio.get_running_loop().call_later(self.delay_s, run)

    def _user_action(self) -> None:
        # Toasts disappear once the user moves on
        if self.toast is not None:
            self.toast = None

    # =========================================================================
    # Rendering
    # =========================================================================

    def render(self) -> None:
        builders = {
            "login": self._login_view,
            "dashboard": self._dashboard_view,
            "list": self._list_view,
            "add": self._form_view,
            "edit": self._form_view,
        }
        body = builders.get(self.view)
        nodes = body() if body else []
        if self.toast:
            nodes.append(FakeNode("div", css={".oxd-toast--success", ".oxd-toast"}, text=self.toast))
        self.page.show(*nodes)

    # -- login ----------------------------------------------------------------

    def _login_view(self) -> List[FakeNode]:
        def filler(key: str):
            def fill(node: FakeNode, value: str) -> None:
                self.login_values[key] = value
                self.required_errors = False
                self.render()
            return fill

        username = FakeNode(
            "input", css={"input[name='username']"}, placeholder="Username",
            value=self.login_values["username"], on_fill=filler("username"),
        )
        password = FakeNode(
            "input", css={"input[name='password']", "input[type='password']"}, placeholder="Password",
            value=self.login_values["password"], on_fill=filler("password"),
        )
        required = [
            FakeNode("span", css={".oxd-input-field-error-message"}, text="Required")
            for _ in range(2) if self.required_errors
        ]
        form = FakeNode(
            "form",
            css={".orangehrm-login-form form", "form:has(input[name='password'])"},
            children=[
                input_group("Username", username),
                input_group("Password", password),
                *required,
                FakeNode("button", role="button", text="Login", css={"button[type='submit']"}, on_click=self._submit_login),
            ],
        )
        nodes = [FakeNode("h5", role="heading", text="Login"), form]
        if self.login_error:
            nodes.insert(1, FakeNode("p", css={".oxd-alert-content-text"}, role="alert", text=self.login_error))
        return nodes

    def _submit_login(self, node: FakeNode) -> None:
        username, password = self.login_values["username"], self.login_values["password"]
        if not username or not password:
            self.required_errors = True
            self.render()
            return

        self.login_error = None
        self.render()

        def answer() -> None:
            if self.accept_logins and (username, password) == self.credentials:
                self.logged_in = True
                self.login_values = {"username": "", "password": ""}
                self._go("/dashboard/index")
            else:
                self.login_error = "Invalid credentials"
                self.login_values = {"username": "", "password": ""}

        self._later(answer)

    # -- shared layout ---------------------------------------------------------

    def _top_bar(self, heading: str) -> List[FakeNode]:
        heading_css = {"h6.oxd-topbar-header-breadcrumb-module", f'h6:has-text("{heading}")'}
        if heading == "Dashboard":
            heading_css.add('h6.oxd-topbar-header-breadcrumb-module:text-is("Dashboard")')

        def toggle_menu(node: FakeNode) -> None:
            self.user_menu_open = not self.user_menu_open
            self.render()

        def logout(node: FakeNode) -> None:
            self.logged_in = False
            self._go("/auth/login")

        menu = FakeNode(
            "ul", css={".oxd-dropdown-menu"}, role="menu",
            children=[
                FakeNode("a", role="menuitem", text="About"),
                FakeNode("a", role="menuitem", text="Logout", css={'a:has-text("Logout")'}, on_click=logout),
            ],
        )
        trigger = FakeNode("span", css={".oxd-userdropdown-tab"}, children=[
            FakeNode("p", css={".oxd-userdropdown-name"}, text="Paul Collings"),
        ], on_click=toggle_menu)

        def go(path: str):
            return lambda node: self._go(path)

        side = FakeNode("nav", css={"aside nav", ".oxd-sidepanel"}, role="navigation", name="Sidepanel", children=[
            FakeNode("a", role="link", text="Admin", css={'a.oxd-main-menu-item:has-text("Admin")'},
                     on_click=go("/admin/viewSystemUsers")),
            FakeNode("a", role="link", text="PIM", on_click=go("/pim/viewEmployeeList")),
            FakeNode("a", role="link", text="Dashboard", on_click=go("/dashboard/index")),
        ])
        top = [
            FakeNode("h6", role="heading", text=heading, css=heading_css),
            trigger,
        ]
        if self.user_menu_open:
            top.append(menu)
        return [side, FakeNode("header", children=top)]

    # -- dashboard -------------------------------------------------------------

    def _dashboard_view(self) -> List[FakeNode]:
        return self._top_bar("Dashboard") + [FakeNode("div", text="Time at Work")]

    # -- System Users list ---------------------------------------------------

    def visible_users(self) -> List[StoredUser]:
        if not self.applied_filter:
            return list(self.users)
        wanted = self.applied_filter.casefold()
        return [u for u in self.users if u.username.casefold() == wanted]

    def _reload_grid(self, applied: str) -> None:
        """Refetch the users; the old rows stay until the loader shows."""
        self._grid_requests += 1
        request = self._grid_requests
        self.selected.clear()

        def show_loader() -> None:
            if request == self._grid_requests and self._loaded_request != request:
                self.grid_loading = True
                self.render()

        if self.loader_lag_s > 0:
            asyncio.get_running_loop().call_later(self.loader_lag_s, show_loader)
            self.render()
        else:
            show_loader()

        def loaded() -> None:
            self.grid_loading = False
            self.applied_filter = applied
            self._loaded_request = request
            self.page.respond(f"{BASE_URL}/api/v2/admin/users?limit=50&offset=0&username={applied}")

        self._later(loaded)

    def _list_view(self) -> List[FakeNode]:
        def fill_filter(node: FakeNode, value: str) -> None:
            self._user_action()
            self.filter_input = value
            self.render()

        def search(node: FakeNode) -> None:
            self._user_action()
            self._reload_grid(self.filter_input.strip())

        def reset(node: FakeNode) -> None:
            self._user_action()
            self.filter_input = ""
            self._reload_grid("")

        def add(node: FakeNode) -> None:
            self._user_action()
            self._go("/admin/saveSystemUser")

        filter_box = FakeNode("div", css={".oxd-table-filter", "form:has(button:has-text('Reset'))"}, children=[
            FakeNode("h5", css={".oxd-table-filter-title", 'h5:text-is("System Users")'}, role="heading", text="System Users"),
            input_group("Username", FakeNode("input", value=self.filter_input, on_fill=fill_filter)),
            button("Reset", reset),
            button("Search", search),
        ])
        header = FakeNode("div", css={".orangehrm-header-container"}, children=[
            button("Add", add, css={".orangehrm-header-container button"}),
        ])

        rows = [] if self.grid_loading else [self._row(u) for u in self.visible_users()]
        table = FakeNode("div", css={".oxd-table-body"}, role="rowgroup", children=rows)
        nodes = self._top_bar("Admin") + [filter_box, header]
        if self.selected and not self.grid_loading:
            nodes.append(button("Delete Selected", self._ask_delete))
        if self.grid_loading:
            nodes.append(FakeNode("div", css={".oxd-loading-spinner"}))
        elif not rows:
            nodes.append(FakeNode("span", text="No Records Found"))
        nodes.append(table)
        if self.dialog_open:
            nodes.append(self._dialog())
        return nodes

    def _row(self, user: StoredUser) -> FakeNode:
        def toggle(node: FakeNode) -> None:
            self._user_action()
            self.selected.symmetric_difference_update({user.id})
            self.render()

        def edit(node: FakeNode) -> None:
            self._user_action()
            self._go(f"/admin/saveSystemUser/{user.id}")

        def delete(node: FakeNode) -> None:
            self._user_action()
            self.selected = {user.id}
            self._ask_delete(node)

        cells = [
            FakeNode("div", css={".oxd-table-card-cell-checkbox"}, children=[
                FakeNode("label", css={".oxd-table-card-cell-checkbox .oxd-checkbox-wrapper label"},
                         role="checkbox", name="", checked=user.id in self.selected, on_click=toggle),
            ]),
            FakeNode("div", css={".oxd-table-cell", el.USERNAME_CELL}, role="cell", text=user.username),
            FakeNode("div", css={".oxd-table-cell"}, role="cell", text=user.role),
            FakeNode("div", css={".oxd-table-cell"}, role="cell", text=user.employee_name),
            FakeNode("div", css={".oxd-table-cell"}, role="cell", text=user.status),
            FakeNode("div", css={".oxd-table-cell", ".oxd-table-cell-actions"}, children=[
                FakeNode("button", css={".oxd-table-cell-actions button:has(i.bi-trash)",
                                        ".oxd-table-cell-actions button >> nth=0"}, on_click=delete),
                FakeNode("button", css={".oxd-table-cell-actions button:has(i.bi-pencil-fill)",
                                        ".oxd-table-cell-actions button >> nth=1"}, on_click=edit),
            ]),
        ]
        return FakeNode(
            "div",
            css={".oxd-table-card", f'.oxd-table-card:has({el.USERNAME_CELL}:text-is("{user.username}"))'},
            role="row",
            children=cells,
        )

    def _ask_delete(self, node: FakeNode) -> None:
        self._user_action()
        self.dialog_open = True
        self.render()

    def _dialog(self) -> FakeNode:
        def cancel(node: FakeNode) -> None:
            self.dialog_open = False
            self.render()

        def confirm(node: FakeNode) -> None:
            self.dialog_open = False
            gone = [u for u in self.users if u.id in self.selected]
            self.users = [u for u in self.users if u.id not in self.selected]
            self.deleted.extend(u.username for u in gone)
            self.toast = "Successfully Deleted"
            self._reload_grid(self.applied_filter)

        return FakeNode("div", css={".orangehrm-dialog-popup", ".oxd-dialog-sheet"}, role="dialog", children=[
            FakeNode("p", text="Are you Sure?"),
            button("No, Cancel", cancel),
            button("Yes, Delete", confirm),
        ])

    # -- Add / Edit User form ---------------------------------------------

    def _select(self, label: str, key: str, options: List[str]) -> FakeNode:
        form = self.form

        def toggle(node: FakeNode) -> None:
            self._user_action()
            form.open_select = None if form.open_select == key else key
            self.render()

        def choose(option: str):
            def pick(node: FakeNode) -> None:
                setattr(form, key, option)
                form.open_select = None
                self.render()
            return pick

        controls = [FakeNode("div", css={".oxd-select-text", ".oxd-select-wrapper"}, text=getattr(form, key), on_click=toggle)]
        if form.open_select == key:
            controls.append(FakeNode("div", css={".oxd-select-dropdown"}, role="listbox", children=[
                FakeNode("div", css={".oxd-select-option"}, role="option", text=o, on_click=choose(o))
                for o in ["-- Select --", *options]
            ]))
        return input_group(label, *controls)

    def _employee_field(self) -> FakeNode:
        form = self.form

        def fill(node: FakeNode, value: str) -> None:
            self._user_action()
            form.employee_input = value
            form.employee_selected = None
            form.suggestions = [] if value else None
            form.searching = bool(value)
            self.render()
            if value:
                def results() -> None:
                    if form is self.form and form.employee_input == value:
                        form.searching = False
                        form.suggestions = [e for e in self.employees if value.casefold() in e.casefold()]
                self._later(results)

        def choose(name: str):
            def pick(node: FakeNode) -> None:
                form.employee_selected = name
                form.employee_input = name
                form.suggestions = None
                self.render()
            return pick

        controls = [FakeNode(
            "input", css={".oxd-autocomplete-text-input input"}, placeholder="Type for hints...",
            value=form.employee_input, on_fill=fill,
        )]
        if form.suggestions is not None:
            if form.searching:
                options = [FakeNode("div", css={".oxd-autocomplete-option"}, role="option", text="Searching....")]
            elif not form.suggestions:
                options = [FakeNode("div", css={".oxd-autocomplete-option"}, role="option", text="No Records Found")]
            else:
                options = [
                    FakeNode("div", css={".oxd-autocomplete-option"}, role="option", text=name, on_click=choose(name))
                    for name in form.suggestions
                ]
            controls.append(FakeNode("div", css={".oxd-autocomplete-dropdown"}, role="listbox", children=options))
        return input_group("Employee Name", *controls)

    def _text(self, label: str, key: str, password: bool = False) -> FakeNode:
        form = self.form

        def fill(node: FakeNode, value: str) -> None:
            self._user_action()
            setattr(form, key, value)
            self.render()

        css = {"input[type='password']"} if password else set()
        return input_group(label, FakeNode("input", css=css, value=getattr(form, key), on_fill=fill))

    def _form_view(self) -> List[FakeNode]:
        form = self.form
        editing = self.view == "edit"
        title = "Edit User" if editing else "Add User"

        def toggle_change_password(node: FakeNode) -> None:
            self._user_action()
            form.change_password = not form.change_password
            self.render()

        fields = [
            self._select("User Role", "role", ["Admin", "ESS"]),
            self._employee_field(),
            self._select("Status", "status", ["Enabled", "Disabled"]),
            self._text("Username", "username"),
        ]
        if editing:
            fields.append(input_group(
                "Change Password ?",
                FakeNode("span", css={".oxd-checkbox-wrapper"}, children=[
                    FakeNode(
                        "label",
                        css={'.oxd-input-group:has(label:has-text("Change Password")) .oxd-checkbox-wrapper label',
                             ".oxd-checkbox-wrapper label"},
                        checked=form.change_password,
                        on_click=toggle_change_password,
                    ),
                ]),
            ))
        if not editing or form.change_password:
            fields += [self._text("Password", "password", True), self._text("Confirm Password", "confirm", True)]
        fields += [FakeNode("span", css={".oxd-input-field-error-message"}, text=e) for e in form.errors]
        fields += [button("Cancel", lambda node: self._go("/admin/viewSystemUsers")), button("Save", self._save)]

        card = FakeNode("div", css={".orangehrm-card-container"}, children=[
            FakeNode("h6", role="heading", text=title, css={f'h6:text-is("{title}")'}),
            FakeNode("form", css={".orangehrm-card-container form", "form:has(button:has-text('Save'))"}, children=fields),
        ])
        return self._top_bar("Admin") + [card]

    def _validate(self) -> List[str]:
        form = self.form
        errors = []
        if form.role not in ("Admin", "ESS") or form.status not in ("Enabled", "Disabled"):
            errors.append("Required")
        if form.employee_selected is None:
            errors.append("Invalid")
        if not form.username or any(u.username == form.username and u.id != form.user_id for u in self.users):
            errors.append("Already exists")
        if (self.view == "add" or form.change_password) and (not form.password or form.password != form.confirm):
            errors.append("Passwords do not match")
        return errors

    def _save(self, node: FakeNode) -> None:
        self._user_action()
        form = self.form
        form.errors = self._validate()
        if form.errors or not self.accept_saves:
            self.render()
            return

        if self.view == "add":
            user = StoredUser(self._next_id, form.username, form.password, form.role,
                              form.employee_selected, form.status)
            self._next_id += 1
            self.users.append(user)
        else:
            user = self._user_by_id(form.user_id)
            user.username, user.role, user.status = form.username, form.role, form.status
            user.employee_name = form.employee_selected
            if form.change_password:
                user.password = form.password
        self.saved.append(user.username)
        self.toast = "Successfully Saved"
        self._go("/admin/viewSystemUsers")

    # =========================================================================
    # Helpers for tests
    # =========================================================================

    def find_user(self, username: str) -> Optional[StoredUser]:
        return next((u for u in self.users if u.username == username), None)

    def add_user(self, username: str, **fields_: str) -> StoredUser:
        data: Dict[str, str] = {"password": "Aa1!secret", "role": "ESS", "employee_name": "Jane Doe", "status": "Enabled"}
        data.update(fields_)
        user = StoredUser(self._next_id, username, **data)
        self._next_id += 1
        self.users.append(user)
        return user
