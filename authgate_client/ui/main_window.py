from __future__ import annotations

import json
import logging
import threading
import traceback

import customtkinter as ctk

from authgate_client.config import AppSettings, ConfigurationError
from authgate_client.gate import StartupGate
from authgate_client.http import SessionExpiredError
from authgate_client.logging_utils import configure_logging
from authgate_client.models import AuthState, Route
from authgate_client.services import AuthService, build_session_context

logger = logging.getLogger(__name__)


class MainWindow(ctk.CTk):
	def __init__(self, service: AuthService, gate: StartupGate, default_request_path: str):
		super().__init__()
		self._service = service
		self._gate = gate
		self.title("AuthGate Client")
		self.geometry("900x640")
		self.minsize(720, 520)

		self._splash_frame = ctk.CTkFrame(self)
		ctk.CTkLabel(self._splash_frame, text="Checking saved session...").pack(
			expand=True, padx=16, pady=16
		)

		self._login_frame = ctk.CTkFrame(self)
		ctk.CTkLabel(self._login_frame, text="Sign in").pack(anchor="w", padx=16, pady=(16, 8))
		self._username_entry = ctk.CTkEntry(self._login_frame, placeholder_text="Username")
		self._username_entry.pack(fill="x", padx=16, pady=6)
		self._password_entry = ctk.CTkEntry(self._login_frame, placeholder_text="Password", show="*")
		self._password_entry.pack(fill="x", padx=16, pady=6)
		self._sign_in_btn = ctk.CTkButton(self._login_frame, text="Sign in", command=self._sign_in)
		self._sign_in_btn.pack(anchor="w", padx=16, pady=8)
		self._login_status_label = ctk.CTkLabel(self._login_frame, text="", text_color="#d14343")
		self._login_status_label.pack(anchor="w", padx=16, pady=(0, 8))

		self._home_frame = ctk.CTkFrame(self)
		action_row = ctk.CTkFrame(self._home_frame)
		action_row.pack(fill="x", padx=16, pady=(16, 8))
		self._home_status_label = ctk.CTkLabel(action_row, text="Signed in")
		self._home_status_label.pack(side="left", padx=(8, 6), pady=8)
		self._sign_out_btn = ctk.CTkButton(action_row, text="Sign out", command=self._sign_out)
		self._sign_out_btn.pack(side="right", padx=6, pady=8)

		self._request_path_entry = ctk.CTkEntry(self._home_frame, placeholder_text="Request path, e.g. /auth/me")
		self._request_path_entry.pack(fill="x", padx=16, pady=6)
		self._request_path_entry.insert(0, default_request_path)
		ctk.CTkButton(
			self._home_frame,
			text="Send authenticated GET",
			command=self._send_request,
		).pack(anchor="w", padx=16, pady=8)
		self._output = ctk.CTkTextbox(self._home_frame, height=360)
		self._output.pack(fill="both", expand=True, padx=16, pady=(4, 16))

		self._show_frame(self._splash_frame)
		self.after(0, self._resolve_initial_route)

	def _show_frame(self, frame: ctk.CTkFrame):
		for candidate in (self._splash_frame, self._login_frame, self._home_frame):
			candidate.pack_forget()
		frame.pack(fill="both", expand=True, padx=16, pady=16)

	def _resolve_initial_route(self):
		def worker():
			try:
				route = self._gate.resolve_initial_route()
				message = ""
			except Exception as exc:
				logger.exception("Startup route resolution failed")
				route = Route.LOGIN
				message = f"Could not read saved session: {exc}"

			self.after(0, lambda: self._navigate(route, message))

		threading.Thread(target=worker, daemon=True).start()

	def _navigate(self, route: Route, message: str = ""):
		if route is Route.HOME:
			self._sign_out_btn.configure(state="normal")
			self._refresh_auth_state()
			self._show_frame(self._home_frame)
			return

		self._login_status_label.configure(text=message)
		self._sign_in_btn.configure(state="normal")
		self._show_frame(self._login_frame)

	def _refresh_auth_state(self):
		self._home_status_label.configure(text="Reading saved session...")

		def worker():
			try:
				text = self._describe_state(self._service.auth_state())
			except Exception as exc:
				text = f"Session unavailable: {exc}"

			self.after(0, lambda: self._home_status_label.configure(text=text))

		threading.Thread(target=worker, daemon=True).start()

	@staticmethod
	def _describe_state(state: AuthState) -> str:
		if not state.is_signed_in:
			return "Not signed in"
		return f"Signed in | Token: {state.token_hint}"

	def _sign_in(self):
		username = self._username_entry.get()
		password = self._password_entry.get()
		self._login_status_label.configure(text="Signing in...")
		self._sign_in_btn.configure(state="disabled")

		def worker():
			try:
				state = self._service.sign_in(username, password)
				route = Route.HOME if state.is_signed_in else Route.LOGIN
				message = ""
			except Exception as exc:
				route = Route.LOGIN
				message = f"Sign in failed: {exc}"

			self.after(0, lambda: self._after_sign_in(route, message))

		threading.Thread(target=worker, daemon=True).start()

	def _after_sign_in(self, route: Route, message: str):
		self._password_entry.delete(0, "end")
		self._navigate(route, message)

	def _sign_out(self):
		self._sign_out_btn.configure(state="disabled")

		def worker():
			try:
				self._service.sign_out()
			except Exception as exc:
				message = f"Sign out failed: {exc}"
				self.after(0, lambda: self._after_sign_out_failed(message))
				return

			self.after(0, lambda: self._navigate(Route.LOGIN))

		threading.Thread(target=worker, daemon=True).start()

	def _after_sign_out_failed(self, message: str):
		self._sign_out_btn.configure(state="normal")
		self._home_status_label.configure(text=message)

	def _send_request(self):
		path = self._request_path_entry.get().strip() or "/"
		if not path.startswith("/"):
			path = f"/{path}"
		self._render_output("Running request...")

		def worker():
			expired_message = ""
			try:
				response = self._service.get_json(path)
				rendered = json.dumps(response, indent=2)
			except SessionExpiredError as exc:
				expired_message = f"Session expired ({exc.status_code}). Sign in again."
				rendered = f"{type(exc).__name__}: {exc}"
			except Exception as exc:
				rendered = f"{type(exc).__name__}: {exc}\n\n{traceback.format_exc()}"

			self.after(0, lambda: self._render_output(rendered))
			if expired_message:
				self.after(0, lambda: self._navigate(Route.LOGIN, expired_message))

		threading.Thread(target=worker, daemon=True).start()

	def _render_output(self, text: str):
		self._output.delete("1.0", "end")
		self._output.insert("1.0", text)


def build_app(settings: AppSettings) -> tuple[AuthService, StartupGate]:
	context = build_session_context(settings)
	return AuthService(context), StartupGate(context)


def run_app() -> None:
	configure_logging()
	ctk.set_appearance_mode("System")
	ctk.set_default_color_theme("blue")

	try:
		settings = AppSettings.from_env()
		configure_logging(settings.log_level)
		service, gate = build_app(settings)
	except ConfigurationError as exc:
		app = ctk.CTk()
		app.title("AuthGate Client - Configuration Error")
		app.geometry("760x360")
		message = ctk.CTkTextbox(app)
		message.pack(fill="both", expand=True, padx=16, pady=16)
		message.insert(
			"1.0",
			"Configuration error. Set required environment variables and restart:\n\n"
			f"{exc}\n\n"
			"Required:\n"
			"- AUTHGATE_BASE_URL\n",
		)
		app.mainloop()
		return

	window = MainWindow(service, gate, default_request_path=settings.validate_path)
	window.mainloop()
