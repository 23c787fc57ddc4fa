"""
Core permissions utilities for role-based access control.

Each role maps to the static set of capabilities it may hold. Doctors hold all
of them. Staff hold the intersection of their role row with the flags their
employing doctor granted them.
"""
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Optional, Set


class Role(str, Enum):
    """
    User roles in the practice.

    Roles:
    - DOCTOR: Practice owner; owns patients and their clinical data
    - STAFF: Assistant account created by a doctor, acting on that doctor's behalf
    """
    DOCTOR = "doctor"
    STAFF = "staff"


class Capability(str, Enum):
    """
    Capabilities a route can require.
    """
    # Patient capabilities
    VIEW_PATIENTS = "can_view_patients"
    CREATE_PATIENTS = "can_create_patients"
    EDIT_PATIENT_CONTACT = "can_edit_patient_contact"
    DELETE_PATIENTS = "can_delete_patients"

    # Scheduling
    SCHEDULE_APPOINTMENTS = "can_schedule_appointments"

    # Clinical data
    VIEW_MEDICAL_RECORDS = "can_view_medical_records"
    EDIT_MEDICAL_RECORDS = "can_edit_medical_records"
    VIEW_PRESCRIPTIONS = "can_view_prescriptions"
    WRITE_PRESCRIPTIONS = "can_write_prescriptions"

    # Practice settings, staff and billing
    MANAGE_SETTINGS = "can_manage_settings"


# Role-based capability mapping
ROLE_CAPABILITIES: Dict[Role, FrozenSet[Capability]] = {
    Role.DOCTOR: frozenset(Capability),
    Role.STAFF: frozenset({
        Capability.VIEW_PATIENTS,
        Capability.CREATE_PATIENTS,
        Capability.EDIT_PATIENT_CONTACT,
        Capability.SCHEDULE_APPOINTMENTS,
        Capability.VIEW_MEDICAL_RECORDS,
        Capability.VIEW_PRESCRIPTIONS,
    }),
}

# Flags granted to a staff account when the doctor does not choose any
STAFF_DEFAULT_CAPABILITIES: FrozenSet[Capability] = frozenset({
    Capability.VIEW_PATIENTS,
    Capability.CREATE_PATIENTS,
    Capability.EDIT_PATIENT_CONTACT,
    Capability.SCHEDULE_APPOINTMENTS,
})


def parse_capabilities(values: Optional[Iterable[str]]) -> Set[Capability]:
    """
    Convert stored flag names to capabilities, ignoring unknown names.

    Args:
        values: Capability names as stored on the user row

    Returns:
        Set[Capability]: Known capabilities
    """
    known = {capability.value: capability for capability in Capability}
    return {known[value] for value in (values or []) if value in known}


def get_capabilities(role: Role, granted: Optional[Iterable[str]] = None) -> FrozenSet[Capability]:
    """
    Get the effective capabilities for a role.

    Args:
        role: User role
        granted: Flags stored on the user (only consulted for staff)

    Returns:
        FrozenSet[Capability]: Effective capabilities
    """
    ceiling = ROLE_CAPABILITIES[Role(role)]
    if Role(role) == Role.DOCTOR:
        return ceiling
    return ceiling & frozenset(parse_capabilities(granted))


def has_capability(role: Role, capability: Capability, granted: Optional[Iterable[str]] = None) -> bool:
    """
    Check if a role (with its granted flags) holds a capability.

    Args:
        role: User role
        capability: Capability to check
        granted: Flags stored on the user

    Returns:
        bool: True if the capability is held
    """
    return capability in get_capabilities(role, granted)


def validate_staff_grant(requested: Iterable[str]) -> Set[Capability]:
    """
    Validate flags a doctor wants to grant to a staff account.

    Args:
        requested: Capability names

    Returns:
        Set[Capability]: The requested capabilities

    Raises:
        ValueError: If a name is unknown or outside the staff ceiling
    """
    requested = list(requested)
    parsed = parse_capabilities(requested)
    unknown = [value for value in requested if value not in {c.value for c in parsed}]
    if unknown:
        raise ValueError(f"Unknown capabilities: {unknown}")
    not_grantable = sorted(c.value for c in parsed - ROLE_CAPABILITIES[Role.STAFF])
    if not_grantable:
        raise ValueError(f"Capabilities not available to staff: {not_grantable}")
    return parsed
