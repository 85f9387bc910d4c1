# fleetcomply/utils/default_template_rules.py

# Industry presets offered when building a template's logic step.
# Loaded as-is; ids are derived from preset_type / fee_id.

PRESET_AUTO_REQUIREMENTS = [
    {
        "preset_type": "not_serviced",
        "name": "Not Serviced -> Reason + Photo + GPS",
        "description": "Require documentation when a unit cannot be serviced",
        "conditions": [{"field": "unit_status", "operator": "equals", "value": "Not Serviced"}],
        "required_fields": ["not_serviced_reason", "not_serviced_photo"],
        "evidence_requirements": {"min_photos": 1, "gps_required": True, "gps_accuracy": 50},
        "auto_actions": {
            "create_task": True,
            "task_template": "follow_up_access_issue",
            "notify": ["dispatch"],
        },
    },
    {
        "preset_type": "damage",
        "name": "Damage/Issue -> Photos + Task",
        "description": "Require photos and create repair task for any damage",
        "conditions": [{"field": "damage_detected", "operator": "equals", "value": True}],
        "required_fields": ["damage_photos", "damage_description"],
        "evidence_requirements": {"min_photos": 2, "photo_types": ["close_up", "context"]},
        "auto_actions": {"create_task": True, "task_template": "repair_damage", "due_days": 3},
    },
    {
        "preset_type": "delivery_setup",
        "name": "Delivery/Setup -> Placement Proof",
        "description": "Require placement documentation for deliveries",
        "conditions": [{"field": "template_type", "operator": "equals", "value": "delivery"}],
        "required_fields": [
            "placement_map_pin", "surface_type", "level_check", "distance_from_truck", "placement_photos"
        ],
        "evidence_requirements": {
            "min_photos": 2,
            "gps_required": True,
            "photo_types": ["door_side", "wide_angle"],
        },
    },
    {
        "preset_type": "pickup_removal",
        "name": "Pickup/Removal -> Final Area Photo",
        "description": "Require proof that area is left clean",
        "conditions": [{"field": "template_type", "operator": "equals", "value": "pickup"}],
        "required_fields": ["area_clean_checkbox", "final_area_photo"],
        "evidence_requirements": {"min_photos": 1},
    },
    {
        "preset_type": "event_service",
        "name": "Event Service -> Zone/Bank + Count Check",
        "description": "Require zone tracking and reconciliation for events",
        "conditions": [{"field": "template_type", "operator": "equals", "value": "event"}],
        "required_fields": ["zone_selection", "bank_selection", "units_expected", "units_serviced"],
        "auto_actions": {"validate_reconciliation": True},
    },
    {
        "preset_type": "ada_units",
        "name": "ADA Units -> Access Checks",
        "description": "Ensure ADA compliance requirements are met",
        "conditions": [{"field": "unit_type", "operator": "equals", "value": "ADA"}],
        "required_fields": [
            "ground_level_check", "path_clear_check", "door_clearance_check", "ada_compliance_photo"
        ],
        "evidence_requirements": {"min_photos": 1, "photo_types": ["ramp_clearance"]},
    },
    {
        "preset_type": "spill_incident",
        "name": "Spill/Incident -> Compliance Form + Notify",
        "description": "Handle spill incidents with full documentation",
        "conditions": [{"field": "spill_incident", "operator": "equals", "value": True}],
        "required_fields": ["spill_checklist", "spill_photos", "spill_location"],
        "evidence_requirements": {"min_photos": 2, "gps_required": True},
        "auto_actions": {
            "create_task": True,
            "task_template": "compliance_follow_up",
            "notify": ["dispatch", "safety"],
        },
    },
]

DEFAULT_FEE_SUGGESTIONS = [
    {
        "fee_id": "fee_blocked_access",
        "fee_name": "Blocked Access Fee",
        "fee_amount": 50.00,
        "conditions": [
            {"field": "unit_status", "operator": "equals", "value": "Not Serviced"},
            {"field": "not_serviced_reason", "operator": "equals", "value": "Blocked Access", "logic": "AND"},
        ],
        "scope": "per_unit",
        "auto_add": True,
    },
    {
        "fee_id": "fee_extra_blue",
        "fee_name": "Extra Blue/Deodorizer",
        "fee_amount": 15.00,
        "conditions": [{"field": "blue_used", "operator": "greater_than", "value": 16}],
        "scope": "per_unit",
        "auto_add": False,
    },
    {
        "fee_id": "fee_excess_waste",
        "fee_name": "Excess Waste / Heavy Pump",
        "fee_amount": 25.00,
        # seconds on unit
        "conditions": [{"field": "time_on_unit", "operator": "greater_than", "value": 360}],
        "scope": "per_unit",
        "auto_add": True,
    },
    {
        "fee_id": "fee_relocation",
        "fee_name": "Relocation Fee",
        "fee_amount": 35.00,
        "conditions": [
            {"field": "unit_relocated", "operator": "equals", "value": True},
            {"field": "relocation_distance", "operator": "greater_than", "value": 25, "logic": "AND"},
        ],
        "scope": "per_unit",
        "auto_add": True,
    },
    {
        "fee_id": "fee_tipped_recovery",
        "fee_name": "Tipped Unit Recovery",
        "fee_amount": 25.00,
        "conditions": [{"field": "unit_tipped", "operator": "equals", "value": True}],
        "scope": "per_unit",
        "auto_add": True,
    },
    {
        "fee_id": "fee_graffiti",
        "fee_name": "Graffiti Removal",
        "fee_amount": 35.00,
        "conditions": [{"field": "issue_code", "operator": "equals", "value": "Graffiti"}],
        "scope": "per_unit",
        "auto_add": False,
    },
    {
        "fee_id": "fee_frozen_tank",
        "fee_name": "Frozen Tank Treatment",
        "fee_amount": 20.00,
        "conditions": [{"field": "frozen_unsafe", "operator": "equals", "value": True}],
        "scope": "per_unit",
        "auto_add": True,
    },
    {
        "fee_id": "fee_after_hours",
        "fee_name": "After-Hours Service",
        "fee_amount": 40.00,
        "conditions": [
            {"field": "service_hour", "operator": "less_than", "value": 7, "logic": "OR"},
            {"field": "service_hour", "operator": "greater_than", "value": 18, "logic": "OR"},
        ],
        "scope": "per_job",
        "auto_add": True,
        "prevent_duplicates": True,
    },
    {
        "fee_id": "fee_lock",
        "fee_name": "Missing/Damaged Lock",
        "fee_amount": 8.00,
        "conditions": [{"field": "issue_code", "operator": "equals", "value": "Lock"}],
        "scope": "per_unit",
        "auto_add": False,
    },
    {
        "fee_id": "fee_anchor",
        "fee_name": "Anchor/Strap Add",
        "fee_amount": 15.00,
        "conditions": [
            {"field": "wind_exposure", "operator": "equals", "value": "High"},
            {"field": "anchoring", "operator": "equals", "value": False, "logic": "AND"},
        ],
        "scope": "per_unit",
        "auto_add": False,
    },
]

DEFAULT_PERMISSIONS = {
    "tech_editable_fields": ["*"],
    "office_editable_fields": ["*"],
    "internal_only_fields": [],
    "fee_editing": {
        "tech_can_add": True,
        "tech_can_edit_amount": False,
        "requires_approval_over": None,
    },
    "report_lock": {"lock_on_submit": True, "office_can_unlock": True},
}

DEFAULT_OUTPUT_CONFIG = {
    "pdf_layout": "summary_first",
    "customer_pdf_fields": [],
    "internal_pdf_fields": ["*"],
    "photo_grid_columns": 2,
    "watermark": None,
    "show_brand_header": True,
}
