"""Resource table for Home Connect appliances.

Every resource the integration knows about is defined once here and looked
up either by its wire key or by its symbolic name.
"""

from __future__ import annotations

from .models import Resource, ResourceCategory, ValueKind

SETTING_FREEZER_SETPOINT_TEMPERATURE = (
    "Refrigeration.FridgeFreezer.Setting.SetpointTemperatureFreezer"
)
SETTING_FRIDGE_SETPOINT_TEMPERATURE = (
    "Refrigeration.FridgeFreezer.Setting.SetpointTemperatureRefrigerator"
)
SETTING_FREEZER_SUPER_MODE = "Refrigeration.FridgeFreezer.Setting.SuperModeFreezer"
SETTING_FRIDGE_SUPER_MODE = "Refrigeration.FridgeFreezer.Setting.SuperModeRefrigerator"
SETTING_FRIDGE_ECO_MODE = "Refrigeration.Common.Setting.EcoMode"
SETTING_POWER_STATE = "BSH.Common.Setting.PowerState"
SETTING_AMBIENT_LIGHT_ENABLED = "BSH.Common.Setting.AmbientLightEnabled"
SETTING_AMBIENT_LIGHT_BRIGHTNESS = "BSH.Common.Setting.AmbientLightBrightness"
SETTING_AMBIENT_LIGHT_COLOR = "BSH.Common.Setting.AmbientLightColor"
SETTING_AMBIENT_LIGHT_CUSTOM_COLOR = "BSH.Common.Setting.AmbientLightCustomColor"
SETTING_FUNCTIONAL_LIGHT = "Cooking.Common.Setting.Lighting"
SETTING_FUNCTIONAL_LIGHT_BRIGHTNESS = "Cooking.Common.Setting.LightingBrightness"

STATUS_DOOR_STATE = "BSH.Common.Status.DoorState"
STATUS_OPERATION_STATE = "BSH.Common.Status.OperationState"
STATUS_REMOTE_CONTROL_ACTIVE = "BSH.Common.Status.RemoteControlActive"
STATUS_REMOTE_CONTROL_START_ALLOWED = "BSH.Common.Status.RemoteControlStartAllowed"
STATUS_LOCAL_CONTROL_ACTIVE = "BSH.Common.Status.LocalControlActive"
STATUS_FRIDGE_MEASURED_TEMPERATURE = (
    "Refrigeration.FridgeFreezer.Status.MeasuredTemperatureRefrigerator"
)
STATUS_FREEZER_MEASURED_TEMPERATURE = (
    "Refrigeration.FridgeFreezer.Status.MeasuredTemperatureFreezer"
)
STATUS_CURRENT_CAVITY_TEMPERATURE = "Cooking.Oven.Status.CurrentCavityTemperature"

ROOT_ACTIVE_PROGRAM = "BSH.Common.Root.ActiveProgram"
ROOT_SELECTED_PROGRAM = "BSH.Common.Root.SelectedProgram"
ROOT_AVAILABLE_PROGRAMS = "BSH.Common.Root.AvailablePrograms"

OPTION_FINISH_IN_RELATIVE = "BSH.Common.Option.FinishInRelative"
OPTION_REMAINING_PROGRAM_TIME = "BSH.Common.Option.RemainingProgramTime"
OPTION_PROGRAM_PROGRESS = "BSH.Common.Option.ProgramProgress"

EVENT_DOOR_ALARM_FREEZER = "Refrigeration.FridgeFreezer.Event.DoorAlarmFreezer"
EVENT_DOOR_ALARM_REFRIGERATOR = "Refrigeration.FridgeFreezer.Event.DoorAlarmRefrigerator"

_FRIDGE_TYPES = frozenset({"FridgeFreezer", "Refrigerator", "Freezer"})
_PROGRAM_TYPES = frozenset(
    {"Washer", "Dryer", "WasherDryer", "Dishwasher", "Oven", "CoffeeMaker", "Hood"}
)

RESOURCES: tuple[Resource, ...] = (
    Resource(
        "FREEZER_TEMPERATURE_SETPOINT",
        ResourceCategory.SETTING,
        SETTING_FREEZER_SETPOINT_TEMPERATURE,
        ValueKind.INT,
        _FRIDGE_TYPES,
    ),
    Resource(
        "FRIDGE_TEMPERATURE_SETPOINT",
        ResourceCategory.SETTING,
        SETTING_FRIDGE_SETPOINT_TEMPERATURE,
        ValueKind.INT,
        _FRIDGE_TYPES,
    ),
    Resource(
        "FREEZER_SUPER_MODE",
        ResourceCategory.SETTING,
        SETTING_FREEZER_SUPER_MODE,
        ValueKind.BOOL,
        _FRIDGE_TYPES,
    ),
    Resource(
        "FRIDGE_SUPER_MODE",
        ResourceCategory.SETTING,
        SETTING_FRIDGE_SUPER_MODE,
        ValueKind.BOOL,
        _FRIDGE_TYPES,
    ),
    Resource(
        "FRIDGE_ECO_MODE",
        ResourceCategory.SETTING,
        SETTING_FRIDGE_ECO_MODE,
        ValueKind.BOOL,
        _FRIDGE_TYPES,
    ),
    Resource(
        "FRIDGE_MEASURED_TEMPERATURE",
        ResourceCategory.STATUS,
        STATUS_FRIDGE_MEASURED_TEMPERATURE,
        ValueKind.DOUBLE,
        _FRIDGE_TYPES,
    ),
    Resource(
        "FREEZER_MEASURED_TEMPERATURE",
        ResourceCategory.STATUS,
        STATUS_FREEZER_MEASURED_TEMPERATURE,
        ValueKind.DOUBLE,
        _FRIDGE_TYPES,
    ),
    Resource(
        "FREEZER_DOOR_ALARM",
        ResourceCategory.EVENT,
        EVENT_DOOR_ALARM_FREEZER,
        ValueKind.STRING,
        _FRIDGE_TYPES,
    ),
    Resource(
        "FRIDGE_DOOR_ALARM",
        ResourceCategory.EVENT,
        EVENT_DOOR_ALARM_REFRIGERATOR,
        ValueKind.STRING,
        _FRIDGE_TYPES,
    ),
    Resource(
        "POWER_STATE",
        ResourceCategory.SETTING,
        SETTING_POWER_STATE,
        ValueKind.STRING,
    ),
    Resource(
        "DOOR_STATE",
        ResourceCategory.STATUS,
        STATUS_DOOR_STATE,
        ValueKind.STRING,
    ),
    Resource(
        "OPERATION_STATE",
        ResourceCategory.STATUS,
        STATUS_OPERATION_STATE,
        ValueKind.STRING,
        _PROGRAM_TYPES,
    ),
    Resource(
        "REMOTE_CONTROL_ACTIVE",
        ResourceCategory.STATUS,
        STATUS_REMOTE_CONTROL_ACTIVE,
        ValueKind.BOOL,
        _PROGRAM_TYPES,
    ),
    Resource(
        "REMOTE_CONTROL_START_ALLOWED",
        ResourceCategory.STATUS,
        STATUS_REMOTE_CONTROL_START_ALLOWED,
        ValueKind.BOOL,
        _PROGRAM_TYPES,
    ),
    Resource(
        "LOCAL_CONTROL_ACTIVE",
        ResourceCategory.STATUS,
        STATUS_LOCAL_CONTROL_ACTIVE,
        ValueKind.BOOL,
        _PROGRAM_TYPES,
    ),
    Resource(
        "ACTIVE_PROGRAM",
        ResourceCategory.PROGRAM_ACTIVE,
        ROOT_ACTIVE_PROGRAM,
        ValueKind.STRING,
        _PROGRAM_TYPES,
    ),
    Resource(
        "SELECTED_PROGRAM",
        ResourceCategory.PROGRAM_SELECTED,
        ROOT_SELECTED_PROGRAM,
        ValueKind.STRING,
        _PROGRAM_TYPES,
    ),
    Resource(
        "AVAILABLE_PROGRAMS",
        ResourceCategory.PROGRAM_AVAILABLE,
        ROOT_AVAILABLE_PROGRAMS,
        ValueKind.STRING,
        _PROGRAM_TYPES,
    ),
    Resource(
        "REMAINING_PROGRAM_TIME",
        ResourceCategory.PROGRAM_ACTIVE_OPTION,
        OPTION_REMAINING_PROGRAM_TIME,
        ValueKind.INT,
        _PROGRAM_TYPES,
    ),
    Resource(
        "FINISH_IN_RELATIVE",
        ResourceCategory.PROGRAM_ACTIVE_OPTION,
        OPTION_FINISH_IN_RELATIVE,
        ValueKind.INT,
        _PROGRAM_TYPES,
    ),
    Resource(
        "PROGRAM_PROGRESS",
        ResourceCategory.PROGRAM_ACTIVE_OPTION,
        OPTION_PROGRAM_PROGRESS,
        ValueKind.INT,
        _PROGRAM_TYPES,
    ),
)

_BY_KEY: dict[str, Resource] = {resource.key.lower(): resource for resource in RESOURCES}
_BY_NAME: dict[str, Resource] = {resource.name: resource for resource in RESOURCES}

# Writable settings exposed as controls rather than sensors
SETPOINT_RESOURCE_NAMES = frozenset(
    {"FRIDGE_TEMPERATURE_SETPOINT", "FREEZER_TEMPERATURE_SETPOINT"}
)
TOGGLE_RESOURCE_NAMES = frozenset(
    {"FRIDGE_SUPER_MODE", "FREEZER_SUPER_MODE", "FRIDGE_ECO_MODE"}
)


def resource_by_key(key: str) -> Resource | None:
    """Return the resource with the given wire key, ignoring case."""
    return _BY_KEY.get(key.lower())


def resource_by_name(name: str) -> Resource | None:
    """Return the resource with the given symbolic name.

    Dashes and underscores are interchangeable and case is ignored, so
    ``fridge-super-mode`` resolves to ``FRIDGE_SUPER_MODE``.
    """
    return _BY_NAME.get(name.replace("-", "_").upper())


def resources_for_appliance(appliance_type: str | None) -> list[Resource]:
    """Return the resources that apply to an appliance type."""
    return [resource for resource in RESOURCES if resource.applies_to(appliance_type)]
