"""Shared Unfold base classes for rewardman admins."""

from unfold.admin import ModelAdmin, TabularInline


class BaseModelAdmin(ModelAdmin):
    compressed_fields = True
    warn_unsaved_form = True


class BaseTabularInline(TabularInline):
    tab = True
