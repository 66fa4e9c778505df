"""
Base classes for Unfold admin in Stockpool.

Provides BaseModelAdmin and BaseTabularInline with compact text areas
(metadata JSON, reasons) so they don't dominate the change forms.
"""

from django import forms
from django.contrib.admin.widgets import AdminTextareaWidget
from unfold.admin import ModelAdmin, TabularInline
from unfold.widgets import UnfoldAdminTextareaWidget

TEXTAREA_WIDGETS = (forms.Textarea, AdminTextareaWidget, UnfoldAdminTextareaWidget)


def compact_textarea(widget, max_width: str | None = None) -> bool:
    """
    Halve the height of a textarea widget in place.

    Args:
        widget: Any form widget; non-textareas are left alone
        max_width: CSS width cap (e.g. "42rem"), None to keep the width

    Returns:
        True if the widget was changed
    """
    if not isinstance(widget, TEXTAREA_WIDGETS):
        return False

    if max_width:
        style = [
            s.strip()
            for s in widget.attrs.get("style", "").split(";")
            if s.strip() and "height" not in s.lower() and "width" not in s.lower()
        ]
        style.append("height: 50%; max-height: 50%")
        style.append(f"width: 100%; max-width: {max_width}")
        widget.attrs["style"] = "; ".join(style) + ";"

    try:
        widget.attrs["rows"] = max(1, int(widget.attrs["rows"]) // 2)
    except (KeyError, ValueError, TypeError):
        widget.attrs["rows"] = 2
    return True


class BaseTabularInline(TabularInline):
    """TabularInline with compact text areas."""

    def get_formset(self, request, obj=None, **kwargs):
        formset = super().get_formset(request, obj, **kwargs)
        for field in formset.form.base_fields.values():
            compact_textarea(field.widget)
        return formset


class BaseModelAdmin(ModelAdmin):
    """ModelAdmin with compact text areas, capped at the width of the other fields."""

    compressed_fields = True

    def get_form(self, request, obj=None, **kwargs):
        form = super().get_form(request, obj, **kwargs)
        for field in form.base_fields.values():
            compact_textarea(field.widget, max_width="42rem")
        return form
