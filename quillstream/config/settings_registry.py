"""Settings registry for centralized management of all application settings.

This module provides a central registry over :class:`AppSettings` that enforces
access levels and offers listing, getting, setting, resetting, import/export
and persistence of the settings.
"""

import enum
import re
import json
from pathlib import Path
from difflib import SequenceMatcher
from typing import Dict, List, Any, Optional

import tomli as toml_read
import tomli_w as toml_write
import yaml
from pydantic import BaseModel

from quillstream.config.settings import AppSettings, SettingAccessLevel
from quillstream.core.logging.logging_manager import logging_manager

SETTINGS_FILE_STEM = "quillstream_settings"
SUPPORTED_FORMATS = ("toml", "json", "yaml")


class SettingsRegistry:
    """Central registry for all settings categories and fields.

    This class provides a frontend-agnostic API for all settings operations,
    including access control enforcement, validation and audit logging.
    """

    def __init__(self, app_settings: Optional[AppSettings] = None, load_persistent: bool = True):
        """Initialize the settings registry.

        Args:
            app_settings (AppSettings, optional): The settings instance to manage.
                                                  If None, uses the singleton instance.
            load_persistent (bool): Overlay the persistent settings file, if any.
        """
        self.settings = app_settings or AppSettings.get_instance()
        self.logger = logging_manager.get_session("SettingsRegistry")

        if load_persistent:
            self.load_persistent_settings()

    def list_settings(self, filter_pattern: Optional[str] = None) -> List[Dict[str, Any]]:
        """List all settings with optional filtering.

        The filter is tried in stages: exact ``category:name`` match, whole
        category, case-insensitive regex, and finally fuzzy matching.

        Args:
            filter_pattern (str, optional): Filter pattern for settings. Defaults to None.

        Returns:
            List[Dict[str, Any]]: List of setting information dictionaries.
        """
        all_settings = self._get_all_settings_metadata()
        if not filter_pattern:
            return all_settings

        for setting in all_settings:
            if f"{setting['category_name']}:{setting['name']}" == filter_pattern:
                return [setting]

        category_matches = [s for s in all_settings if s['category_name'] == filter_pattern]
        if category_matches:
            return category_matches

        try:
            regex = re.compile(filter_pattern, re.IGNORECASE)
            regex_matches = [
                s for s in all_settings
                if regex.search(s['category_name']) or regex.search(s['name']) or regex.search(s['description'])
            ]
            if regex_matches:
                return regex_matches
        except re.error:
            self.logger.debug(f"'{filter_pattern}' is not a valid regex, using fuzzy search")

        scored = []
        for setting in all_settings:
            search_text = f"{setting['category_name']} {setting['name']} {setting['description']}"
            similarity = SequenceMatcher(None, filter_pattern.lower(), search_text.lower()).ratio()
            if similarity > 0.3:
                scored.append((similarity, setting))
        scored.sort(key=lambda item: item[0], reverse=True)
        return [setting for _, setting in scored]

    def get_setting(self, category: str, name: str) -> Dict[str, Any]:
        """Get metadata and value for a specific setting.

        Args:
            category (str): Setting category name.
            name (str): Setting name.

        Returns:
            Dict[str, Any]: Setting information including current and default values.

        Raises:
            ValueError: If the setting is not found.
        """
        setting_info = self._get_setting_info(category, name)
        if not setting_info:
            raise ValueError(f"Setting '{category}:{name}' not found")
        return setting_info

    def set_setting(self, category: str, name: str, value: Any, force: bool = False) -> bool:
        """Set a setting value with access control enforcement.

        Args:
            category (str): Setting category name.
            name (str): Setting name.
            value (Any): New value for the setting.
            force (bool, optional): Force setting protected values. Defaults to False.

        Returns:
            bool: True if setting was successful.

        Raises:
            ValueError: If setting is not found or access is denied.
            ValidationError: If the value is invalid.
        """
        setting_info = self.get_setting(category, name)
        access_level = setting_info['access_level']
        old_value = setting_info['current_value']

        if access_level == SettingAccessLevel.READ_ONLY:
            raise ValueError(f"Setting '{category}:{name}' is read-only and cannot be modified")

        if access_level == SettingAccessLevel.PROTECTED and not force:
            raise ValueError(f"Setting '{category}:{name}' is protected. Use --force to override")

        self._set_setting_value(category, name, value)
        new_value = self._get_setting_value(category, name)
        if access_level == SettingAccessLevel.PROTECTED:
            self.logger.info(f"Protected setting '{category}:{name}' changed")
        else:
            self.logger.info(f"Setting '{category}:{name}' changed from '{old_value}' to '{new_value}'")
        return True

    def reset_setting(self, category: str, name: str, force: bool = False) -> bool:
        """Reset a setting to its default value.

        Args:
            category (str): Setting category name.
            name (str): Setting name.
            force (bool, optional): Force resetting protected values. Defaults to False.

        Returns:
            bool: True if reset was successful.

        Raises:
            ValueError: If setting is not found or access is denied.
        """
        setting_info = self.get_setting(category, name)
        return self.set_setting(category, name, setting_info['default_value'], force)

    @staticmethod
    def make_serializable(obj: Any) -> Any:
        """Convert an object to a format every exporter accepts.

        ``None`` values are dropped from mappings since TOML has no null.

        Args:
            obj (Any): The object to convert.

        Returns:
            Any: A serializable version of the object.
        """
        if isinstance(obj, dict):
            return {k: SettingsRegistry.make_serializable(v) for k, v in obj.items() if v is not None}
        elif isinstance(obj, list):
            return [SettingsRegistry.make_serializable(i) for i in obj]
        elif isinstance(obj, Path):
            return str(obj)
        elif isinstance(obj, enum.Enum):
            return obj.value
        return obj

    def export_settings(self, format: str = "toml", include_read_only: bool = False) -> str:
        """Export settings to a formatted string.

        Args:
            format (str, optional): Export format ('toml', 'json', 'yaml'). Defaults to "toml".
            include_read_only (bool, optional): Whether to include read-only settings. Defaults to False.

        Returns:
            str: Serialized settings data.

        Raises:
            ValueError: If format is not supported.
        """
        if include_read_only:
            settings_dict = self.settings.model_dump()
        else:
            settings_dict = self._get_exportable_settings()

        settings_dict = self.make_serializable(settings_dict)

        fmt = format.lower()
        if fmt == "toml":
            return toml_write.dumps(settings_dict)
        elif fmt == "json":
            return json.dumps(settings_dict, indent=2)
        elif fmt == "yaml":
            return yaml.safe_dump(settings_dict, default_flow_style=False)
        raise ValueError(f"Unsupported export format: {format}")

    def import_settings(self, data: str, format: str = "toml", force: bool = False) -> Dict[str, List[str]]:
        """Import settings from a formatted string.

        Args:
            data (str): Serialized settings data.
            format (str, optional): Import format ('toml', 'json', 'yaml'). Defaults to "toml".
            force (bool, optional): Force importing protected values. Defaults to False.

        Returns:
            Dict[str, List[str]]: Import report with successful, skipped and failed settings.

        Raises:
            ValueError: If format is not supported or data is invalid.
        """
        fmt = format.lower()
        try:
            if fmt == "toml":
                parsed_data = toml_read.loads(data)
            elif fmt == "json":
                parsed_data = json.loads(data)
            elif fmt == "yaml":
                parsed_data = yaml.safe_load(data) or {}
            else:
                raise ValueError(f"Unsupported import format: {format}")
        except (toml_read.TOMLDecodeError, json.JSONDecodeError, yaml.YAMLError) as e:
            raise ValueError(f"Failed to parse {format} data: {e}") from e

        report = {"successful": [], "skipped": [], "failed": []}

        for category_name, category_data in parsed_data.items():
            if not isinstance(category_data, dict):
                continue
            for setting_name, value in category_data.items():
                key = f"{category_name}:{setting_name}"
                try:
                    self.set_setting(category_name, setting_name, value, force)
                    report["successful"].append(key)
                except ValueError as e:
                    message = str(e)
                    if "read-only" in message or "protected" in message:
                        self.logger.warning(f"{key} cannot be modified --> skipped")
                        report["skipped"].append(f"{key} ({message})")
                    else:
                        self.logger.error(f"Failed to set {key} --> {message}")
                        report["failed"].append(f"{key} ({message})")

        self.logger.info(f"Settings import completed: {len(report['successful'])} successful, "
                         f"{len(report['skipped'])} skipped, {len(report['failed'])} failed")
        return report

    def export_settings_to_file(self, file_path: str, format: Optional[str] = None, include_read_only: bool = False) -> bool:
        """Export settings to a file.

        Args:
            file_path (str): Path to export file.
            format (Optional[str]): Export format. If None, detected from file extension.
            include_read_only (bool, optional): Whether to include read-only settings. Defaults to False.

        Returns:
            bool: True if export was successful.
        """
        path = Path(file_path)
        fmt = (format or self._format_from_suffix(path)).lower()
        try:
            data = self.export_settings(fmt, include_read_only)
            path.write_text(data, encoding="utf-8")
        except (OSError, ValueError) as e:
            self.logger.error(f"Failed to export settings to {file_path}: {e}")
            return False

        self.logger.info(f"Settings exported to {path} in {fmt} format")
        return True

    def import_settings_from_file(self, file_path: str, format: Optional[str] = None, force: bool = False) -> bool:
        """Import settings from a file.

        Args:
            file_path (str): Path to import file.
            format (Optional[str]): Import format. If None, detected from file extension.
            force (bool): Force importing protected values.

        Returns:
            bool: True if import was successful.
        """
        path = Path(file_path)
        fmt = (format or self._format_from_suffix(path)).lower()
        try:
            data = path.read_text(encoding="utf-8")
            self.import_settings(data, fmt, force)
        except (OSError, ValueError) as e:
            self.logger.error(f"Failed to import settings from {file_path}: {e}")
            return False

        self.logger.info(f"Settings imported from {file_path} in {fmt} format")
        return True

    def save_persistent_settings(self, format: str = "toml") -> bool:
        """Save current settings to the persistent settings file.

        Args:
            format (str, optional): Format to save in ('toml', 'json', 'yaml'). Defaults to "toml".

        Returns:
            bool: True if save was successful.
        """
        settings_file = self.get_persistent_settings_file_path(format)
        try:
            settings_file.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self.logger.error(f"Failed to save persistent settings: {e}")
            return False
        return self.export_settings_to_file(str(settings_file), format, include_read_only=False)

    def load_persistent_settings(self, format: str = "toml") -> bool:
        """Load settings from the persistent settings file.

        A missing file is created from the current settings.

        Args:
            format (str, optional): Format to load from ('toml', 'json', 'yaml'). Defaults to "toml".

        Returns:
            bool: True if load was successful.
        """
        settings_file = self.get_persistent_settings_file_path(format)

        if not settings_file.exists():
            self.logger.warning(f"No persistent settings file found at {settings_file}, using defaults")
            return self.save_persistent_settings(format)

        success = self.import_settings_from_file(str(settings_file), format, force=True)
        if success:
            self.logger.info(f"Loaded persistent settings from {settings_file}")
        return success

    def get_persistent_settings_file_path(self, format: str = "toml") -> Path:
        """Get the path to the persistent settings file.

        Args:
            format (str, optional): Format extension. Defaults to "toml".

        Returns:
            Path: Path to the persistent settings file.
        """
        return Path(self.settings.paths.settings_dir) / f"{SETTINGS_FILE_STEM}.{format}"

    @staticmethod
    def _format_from_suffix(path: Path) -> str:
        suffix = path.suffix.lower()
        if suffix == ".json":
            return "json"
        if suffix in (".yaml", ".yml"):
            return "yaml"
        return "toml"

    def _get_all_settings_metadata(self) -> List[Dict[str, Any]]:
        """Get metadata for all settings.

        Returns:
            List[Dict[str, Any]]: List of metadata dictionaries for each setting.
        """
        settings_list = []

        for category_name, category_model in iter(self.settings):
            if not isinstance(category_model, BaseModel):
                continue

            for field_name, field_info in type(category_model).model_fields.items():
                default_value = field_info.default
                if field_info.default_factory is not None:
                    default_value = field_info.default_factory()

                access_level = SettingAccessLevel.NORMAL
                if field_info.json_schema_extra:
                    access_level = field_info.json_schema_extra.get('access_level', SettingAccessLevel.NORMAL)

                settings_list.append({
                    "category_name": category_name,
                    "name": field_name,
                    "current_value": getattr(category_model, field_name),
                    "default_value": default_value,
                    "description": field_info.description or "",
                    "access_level": access_level,
                    "type": str(field_info.annotation),
                })
        return settings_list

    def _get_setting_info(self, category: str, name: str) -> Optional[Dict[str, Any]]:
        """Get information for a specific setting."""
        for setting in self._get_all_settings_metadata():
            if setting['category_name'] == category and setting['name'] == name:
                return setting
        return None

    def _get_setting_value(self, category: str, name: str) -> Any:
        """Get the current value of a setting."""
        category_model = getattr(self.settings, category, None)
        if category_model is None:
            raise ValueError(f"Unknown category: {category}")
        return getattr(category_model, name, None)

    def _set_setting_value(self, category: str, name: str, value: Any) -> None:
        """Set the value of a setting with validation."""
        category_model = getattr(self.settings, category, None)
        if category_model is None:
            raise ValueError(f"Unknown category: {category}")

        if name not in type(category_model).model_fields:
            raise ValueError(f"Unknown setting: {name}")

        # "None" typed on the command line means no value
        if isinstance(value, str) and value.lower() == "none":
            value = None

        field_type = type(category_model).model_fields[name].annotation
        if isinstance(field_type, type) and issubclass(field_type, enum.Enum) and value is not None:
            if not isinstance(value, field_type):
                value = field_type(value)

        category_dict = category_model.model_dump()
        category_dict[name] = value

        # Raises ValidationError if the value is invalid
        validated = type(category_model)(**category_dict)

        setattr(category_model, name, getattr(validated, name))

    def _get_exportable_settings(self) -> Dict[str, Any]:
        """Get settings dictionary excluding read-only settings.

        Returns:
            Dict[str, Any]: Settings dictionary with read-only settings filtered out.
        """
        exportable: Dict[str, Any] = {}
        for setting in self._get_all_settings_metadata():
            if setting['access_level'] == SettingAccessLevel.READ_ONLY:
                continue
            exportable.setdefault(setting['category_name'], {})[setting['name']] = setting['current_value']
        return exportable
