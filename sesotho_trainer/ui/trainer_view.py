"""
Trainer View - Username, Add Word and Phrase Generator
-------------------------------------------------------

Single-page form: choose a user, add words by type, generate random
phrases. All logic lives in FormController; this module only wires
widgets to it.
"""

import logging
from typing import Dict, List, Optional

import flet as ft

from sesotho_trainer.config import CATEGORY_STYLE, LANG_CONFIG
from sesotho_trainer.controllers import FormController, WordForm, PAST_FIELDS, PLURAL_FIELDS
from sesotho_trainer.errors import TrainerError
from sesotho_trainer.generator import PhraseToken
from sesotho_trainer.models import Category
from sesotho_trainer.services import VocabularyService
from sesotho_trainer.sync import RemoteDocumentStore

logger = logging.getLogger(__name__)

RANDOM_KEY = "random"


# =============================================================================
# DESIGN TOKENS
# =============================================================================
class DesignTokens:
    """Centralized design tokens for consistent styling."""
    BG_CARD = "#242426"

    TEXT_PRIMARY = "#FFFFFF"
    TEXT_SECONDARY = "#B3B3B3"
    TEXT_TERTIARY = "#808080"

    ACCENT_DANGER = "#E57373"
    ACCENT_SUCCESS = "#81C784"
    ACCENT_WARNING = "#FFB74D"

    SPACING_SM = 8
    SPACING_MD = 16
    SPACING_LG = 24

    RADIUS_MD = 12


SYNC_STATUS_COLORS = {
    "active": DesignTokens.ACCENT_SUCCESS,
    "paused": DesignTokens.ACCENT_WARNING,
    "error": DesignTokens.ACCENT_DANGER,
}


class TrainerView:
    """
    Trainer view bound to a FormController.

    Long-running actions (open/load/save/sync) run via page.run_task so the
    UI stays responsive.
    """

    def __init__(self, page: ft.Page, service: VocabularyService, controller: FormController) -> None:
        """
        Initialize the Trainer view.

        Args:
            page: Flet page instance for updates
            service: Vocabulary service (for status and change notifications)
            controller: Form controller doing the actual work
        """
        self.page = page
        self.service = service
        self.controller = controller
        self.settings = controller.settings

        # UI References (initialized in _build_view)
        self._username_field: Optional[ft.TextField] = None
        self._word_type: Optional[ft.Dropdown] = None
        self._fields: Dict[str, ft.TextField] = {}
        self._plural_group: Optional[ft.Row] = None
        self._past_group: Optional[ft.Row] = None
        self._language_select: Optional[ft.Dropdown] = None
        self._tense_select: Optional[ft.Dropdown] = None
        self._number_select: Optional[ft.Dropdown] = None
        self._output: Optional[ft.Row] = None
        self._stats_text: Optional[ft.Text] = None
        self._sync_text: Optional[ft.Text] = None

        self._container = self._build_view()
        self.service.on_change(self._refresh_status)

    @property
    def container(self) -> ft.Container:
        """Get the main container for this view."""
        return self._container

    # =========================================================================
    # LAYOUT
    # =========================================================================

    def _card(self, title: str, controls: List[ft.Control]) -> ft.Container:
        return ft.Container(
            content=ft.Column(
                controls=[ft.Text(title, size=16, weight=ft.FontWeight.BOLD, color=DesignTokens.TEXT_PRIMARY)] + controls,
                spacing=DesignTokens.SPACING_SM,
            ),
            padding=DesignTokens.SPACING_MD,
            bgcolor=DesignTokens.BG_CARD,
            border_radius=DesignTokens.RADIUS_MD,
        )

    def _text_field(self, key: str, label: str) -> ft.TextField:
        field = ft.TextField(label=label, dense=True, expand=True)
        self._fields[key] = field
        return field

    @staticmethod
    def _selector(label: str, options: List[ft.dropdown.Option]) -> ft.Dropdown:
        return ft.Dropdown(
            label=label,
            value=RANDOM_KEY,
            options=[ft.dropdown.Option(RANDOM_KEY, "Random")] + options,
            width=180,
            dense=True,
        )

    def _build_view(self) -> ft.Container:
        source_label = LANG_CONFIG["source"]["label"]
        target_label = LANG_CONFIG["target"]["label"]

        # Username
        self._username_field = ft.TextField(
            label="Username",
            value=self.settings.get("USERNAME", ""),
            dense=True,
            width=280,
            on_submit=lambda _: self._on_set_user(),
        )
        user_card = self._card("User", [
            ft.Row(
                controls=[
                    self._username_field,
                    ft.ElevatedButton(text="Set user", icon=ft.Icons.PERSON, on_click=lambda _: self._on_set_user()),
                ],
                spacing=DesignTokens.SPACING_SM,
            ),
        ])

        # Add word
        self._word_type = ft.Dropdown(
            label="Word type",
            options=[ft.dropdown.Option(c.value, CATEGORY_STYLE[c.value]["label"]) for c in Category],
            width=220,
            dense=True,
            on_select=lambda _: self._update_fields(),
        )
        self._plural_group = ft.Row(
            controls=[
                self._text_field("source_plural", f"{source_label} plural"),
                self._text_field("target_plural", f"{target_label} plural"),
            ],
            visible=False,
        )
        self._past_group = ft.Row(
            controls=[
                self._text_field("source_past", f"{source_label} past"),
                self._text_field("target_past", f"{target_label} past"),
            ],
            visible=False,
        )
        add_card = self._card("Add word", [
            self._word_type,
            ft.Row(controls=[
                self._text_field("source", source_label),
                self._text_field("target", target_label),
            ]),
            self._plural_group,
            self._past_group,
            ft.ElevatedButton(text="Add word", icon=ft.Icons.ADD, on_click=lambda _: self._on_add_word()),
        ])

        # Generator
        self._language_select = self._selector("Language", [
            ft.dropdown.Option("source", source_label),
            ft.dropdown.Option("target", target_label),
        ])
        self._tense_select = self._selector("Tense", [
            ft.dropdown.Option("present", "Present"),
            ft.dropdown.Option("past", "Past"),
        ])
        self._number_select = self._selector("Number", [
            ft.dropdown.Option("singular", "Singular"),
            ft.dropdown.Option("plural", "Plural"),
        ])
        self._output = ft.Row(wrap=True, spacing=DesignTokens.SPACING_SM)
        generate_card = self._card("Generate phrase", [
            ft.Row(controls=[self._language_select, self._tense_select, self._number_select]),
            ft.ElevatedButton(text="Generate", icon=ft.Icons.SHUFFLE, on_click=lambda _: self._on_generate()),
            self._output,
        ])

        # Status line
        self._stats_text = ft.Text("", size=12, color=DesignTokens.TEXT_SECONDARY)
        self._sync_text = ft.Text("", size=12, color=DesignTokens.TEXT_TERTIARY)
        self._refresh_status(update=False)

        return ft.Container(
            content=ft.Column(
                controls=[
                    ft.Text("Sesotho Vocabulary Trainer", size=24, weight=ft.FontWeight.BOLD),
                    ft.Row(controls=[self._stats_text, self._sync_text], spacing=DesignTokens.SPACING_LG),
                    user_card,
                    add_card,
                    generate_card,
                ],
                spacing=DesignTokens.SPACING_MD,
                scroll=ft.ScrollMode.AUTO,
            ),
            padding=DesignTokens.SPACING_LG,
            expand=True,
        )

    # =========================================================================
    # HANDLERS
    # =========================================================================

    def _update_fields(self) -> None:
        """Show the plural/past groups the selected word type needs."""
        visible = self.controller.visible_fields(self._word_type.value)
        self._plural_group.visible = PLURAL_FIELDS in visible
        self._past_group.visible = PAST_FIELDS in visible
        self.page.update()

    def _on_set_user(self) -> None:
        self.page.run_task(self._set_user_async)

    async def _set_user_async(self) -> None:
        try:
            username = await self.controller.set_username(self._username_field.value)
            self._show_snackbar(f"Username set: {username}")
            await self._start_sync(username)
        except TrainerError as e:
            self._show_snackbar(str(e), success=False)

    async def restore_async(self) -> None:
        """Reopen the last user on startup."""
        try:
            username = await self.controller.restore_username()
            if username:
                await self._start_sync(username)
        except TrainerError as e:
            logger.warning("Could not restore last user: %s", e)
            self._show_snackbar(str(e), success=False)

    async def _start_sync(self, username: str) -> None:
        """Replicate with the configured remote, if sync is enabled."""
        options = self.settings.remote_options()
        if not options:
            return
        remote = RemoteDocumentStore.for_user(username, **options)
        await self.service.start_sync(remote, poll_interval=float(self.settings.get("POLL_INTERVAL", 1.0)))

    def _on_add_word(self) -> None:
        self.page.run_task(self._add_word_async)

    async def _add_word_async(self) -> None:
        form = WordForm(
            word_type=self._word_type.value or "",
            **{key: field.value or "" for key, field in self._fields.items()},
        )
        try:
            await self.controller.submit(form)
        except TrainerError as e:
            self._show_snackbar(str(e), success=False)
            return
        self._show_snackbar("Word saved!")
        self._clear_inputs()

    def _clear_inputs(self) -> None:
        for field in self._fields.values():
            field.value = ""
        self._word_type.value = None
        self._update_fields()

    def _on_generate(self) -> None:
        def selected(dropdown: ft.Dropdown) -> Optional[str]:
            return None if dropdown.value in (None, "", RANDOM_KEY) else dropdown.value

        try:
            tokens = self.controller.generate(
                language=selected(self._language_select),
                tense=selected(self._tense_select),
                number=selected(self._number_select),
            )
        except TrainerError as e:
            self._show_snackbar(str(e), success=False)
            return
        self._output.controls = [self._token_chip(token) for token in tokens]
        self.page.update()

    @staticmethod
    def _token_chip(token: PhraseToken) -> ft.Container:
        return ft.Container(
            content=ft.Text(token.text, color=DesignTokens.TEXT_PRIMARY, size=16),
            bgcolor=CATEGORY_STYLE[token.category.value]["color"],
            padding=ft.Padding.symmetric(horizontal=12, vertical=6),
            border_radius=DesignTokens.RADIUS_MD,
            tooltip=CATEGORY_STYLE[token.category.value]["label"],
        )

    def _refresh_status(self, update: bool = True) -> None:
        """Refresh word counts and sync state."""
        stats = self.service.get_statistics()
        user = self.service.username or "no user"
        self._stats_text.value = f"{user}: {stats['total_words']} words"
        status = self.service.sync_status
        self._sync_text.value = f"Sync: {status}"
        self._sync_text.color = SYNC_STATUS_COLORS.get(status, DesignTokens.TEXT_TERTIARY)
        if update:
            self.page.update()

    def _show_snackbar(self, message: str, success: bool = True) -> None:
        """Show a snackbar notification."""
        snackbar = ft.SnackBar(
            content=ft.Row(
                controls=[
                    ft.Icon(
                        ft.Icons.CHECK_CIRCLE if success else ft.Icons.ERROR,
                        color=ft.Colors.WHITE,
                        size=18,
                    ),
                    ft.Text(message, color=ft.Colors.WHITE),
                ],
                spacing=10,
            ),
            bgcolor=ft.Colors.GREEN_700 if success else ft.Colors.RED_700,
            duration=3000,
        )
        # Clean up old snackbars and add new one
        for ctrl in list(self.page.overlay):
            if isinstance(ctrl, ft.SnackBar):
                self.page.overlay.remove(ctrl)
        self.page.overlay.append(snackbar)
        snackbar.open = True
        self.page.update()

