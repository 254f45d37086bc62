"""
Sesotho Trainer: Flet Application
---------------------------------

Desktop/web front end for the Sesotho vocabulary trainer.
"""

import sys
from pathlib import Path

# Ensure project root is on sys.path for absolute imports
_ROOT = Path(__file__).resolve().parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import flet as ft

from sesotho_trainer.config import SettingsManager
from sesotho_trainer.controllers import FormController
from sesotho_trainer.services import StorageBackend, VocabularyService
from sesotho_trainer.ui import TrainerView
from sesotho_trainer.utils import setup_logger


# =============================================================================
# MAIN APPLICATION
# =============================================================================

class SesothoTrainerApp:
    """Main application controller."""

    def __init__(self, page: ft.Page) -> None:
        """
        Initialize the application.

        Args:
            page: Flet page instance
        """
        self.page = page
        self.settings = SettingsManager()
        self.logger = setup_logger(level=self.settings.get("LOG_LEVEL", "INFO"))
        self._setup_page()
        self._init_views()
        self._build_ui()
        self.page.run_task(self.trainer.restore_async)

    def _setup_page(self) -> None:
        """Configure page settings and theme."""
        self.page.title = "Sesotho Trainer"
        self.page.theme_mode = ft.ThemeMode.DARK
        self.page.bgcolor = "#121212"
        self.page.theme = ft.Theme(
            color_scheme_seed="#7C4DFF",
            font_family="Inter, Roboto, Segoe UI, sans-serif",
        )
        self.page.padding = 0
        self.page.spacing = 0
        self.page.window.min_width = 720
        self.page.window.min_height = 600
        self.page.window.width = 960
        self.page.window.height = 820

    def _init_views(self) -> None:
        """Create the service, controller and trainer view."""
        backend_name = str(self.settings.get("STORAGE_BACKEND", "sqlite")).lower()
        try:
            backend = StorageBackend(backend_name)
        except ValueError:
            self.logger.warning("Unknown storage backend %r, using sqlite", backend_name)
            backend = StorageBackend.SQLITE

        self.service = VocabularyService(backend=backend, data_dir=self.settings.get("DATA_DIR"))
        self.controller = FormController(self.service, self.settings)
        self.trainer = TrainerView(self.page, self.service, self.controller)

    def _build_ui(self) -> None:
        """Build the main UI layout."""
        self.page.add(
            ft.Container(
                content=self.trainer.container,
                expand=True,
                bgcolor="#1A1A1B",
            )
        )


def main(page: ft.Page) -> None:
    """
    Main entry point for Flet application.

    Args:
        page: Flet page instance
    """
    try:
        SesothoTrainerApp(page)
    except Exception as e:
        setup_logger().exception("Trainer UI failed to start")
        page.add(
            ft.Container(
                content=ft.Column(
                    controls=[
                        ft.Text("The trainer could not start", size=20, weight=ft.FontWeight.BOLD, color=ft.Colors.RED_400),
                        ft.Text(f"{type(e).__name__}: {e}", size=12, selectable=True, color=ft.Colors.WHITE70),
                        ft.Text("See the log output for details.", size=11, color=ft.Colors.WHITE54),
                    ],
                    spacing=10,
                ),
                padding=20,
            )
        )
        page.update()


if __name__ == "__main__":
    ft.run(main)
