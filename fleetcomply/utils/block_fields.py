# fleetcomply/utils/block_fields.py

# Field sets offered for each section block. Industry blocks are split into
# named features so the builder can pick a subset; generic blocks carry a
# single placeholder field.

INDUSTRY_BLOCK_FEATURES = {
    "per_unit_loop": {
        "QR Scan": [
            {"id": "unit_qr", "type": "qr_scanner", "label": "Scan Unit QR Code", "required": True, "auto": True},
        ],
        "Status Quick-Tap": [
            {"id": "unit_status", "type": "quick_tap", "label": "Unit Status", "required": True,
             "options": ["Good", "Needs Service", "Damaged", "Missing"]},
        ],
        "Restock Tracking": [
            {"id": "supplies_added", "type": "multi_select", "label": "Supplies Added",
             "options": ["TP", "Sanitizer", "Deodorant", "Paper Towels"]},
            {"id": "supply_quantity", "type": "number", "label": "Quantity", "placeholder": "Enter amount"},
        ],
        "Auto Photos": [
            {"id": "unit_photos", "type": "photo_capture", "label": "Unit Photos", "required": True, "auto": True},
        ],
        "GPS Lock": [
            {"id": "gps_location", "type": "gps", "label": "GPS Location", "required": True, "auto": True},
        ],
    },
    "delivery_setup": {
        "Site Contact": [
            {"id": "contact_name", "type": "text", "label": "Contact Name", "required": True},
            {"id": "contact_phone", "type": "phone", "label": "Contact Phone", "required": True},
        ],
        "GPS Pin": [
            {"id": "delivery_gps", "type": "gps", "label": "Delivery Location", "required": True, "auto": True},
        ],
        "Unit Types": [
            {"id": "units_delivered", "type": "multi_select", "label": "Units Delivered", "required": True,
             "options": ["Standard", "ADA", "VIP", "Sink", "Urinal"]},
            {"id": "unit_count", "type": "number", "label": "Count", "required": True},
        ],
        "Setup Checklist": [
            {"id": "setup_tasks", "type": "checklist", "label": "Setup Complete", "required": True,
             "options": ["Units leveled", "Anchored", "Stocked", "Site cleaned"]},
        ],
        "Customer Signature": [
            {"id": "customer_signature", "type": "signature", "label": "Customer Signature", "required": True},
            {"id": "signature_timestamp", "type": "timestamp", "label": "Signed At", "auto": True},
        ],
    },
    "pickup_removal": {
        "Count Tracking": [
            {"id": "units_retrieved", "type": "number", "label": "Units Retrieved", "required": True},
            {"id": "expected_count", "type": "number", "label": "Expected Count", "required": True},
        ],
        "Exceptions": [
            {"id": "missing_units", "type": "number", "label": "Missing Units", "placeholder": "0"},
            {"id": "damaged_units", "type": "number", "label": "Damaged Units", "placeholder": "0"},
            {"id": "exception_notes", "type": "text_area", "label": "Exception Notes", "rows": 3},
        ],
        "Site Cleanup": [
            {"id": "site_clean", "type": "checklist", "label": "Cleanup Checklist", "required": True,
             "options": ["Debris removed", "Area swept", "No damage"]},
        ],
        "Fee Tracking": [
            {"id": "additional_fees", "type": "multi_select", "label": "Additional Fees",
             "options": ["Missing Unit", "Damage", "Extra Labor", "Disposal"]},
            {"id": "fee_amount", "type": "number", "label": "Fee Amount", "placeholder": "$0.00"},
        ],
    },
    "event_service": {
        "Event Details": [
            {"id": "event_name", "type": "text", "label": "Event Name", "required": True},
            {"id": "event_date", "type": "date", "label": "Event Date", "required": True},
        ],
        "Layout Zones": [
            {"id": "zones", "type": "multi_select", "label": "Service Zones", "required": True,
             "options": ["Main", "VIP", "Backstage", "Parking"]},
        ],
        "Count Reconciliation": [
            {"id": "units_deployed", "type": "number", "label": "Units Deployed", "required": True},
            {"id": "units_serviced", "type": "number", "label": "Units Serviced", "required": True},
        ],
        "Service Frequency": [
            {"id": "service_times", "type": "text_area", "label": "Service Times", "rows": 2,
             "placeholder": "E.g., 8am, 12pm, 4pm"},
        ],
    },
    "repair_damage": {
        "Issue Codes": [
            {"id": "issue_type", "type": "dropdown", "label": "Issue Type", "required": True,
             "options": ["Door", "Lock", "Vent", "Tank", "Seat", "Other"]},
        ],
        "Parts Tracking": [
            {"id": "parts_used", "type": "parts_selector", "label": "Parts Used"},
            {"id": "parts_cost", "type": "number", "label": "Parts Cost", "placeholder": "$0.00"},
        ],
        "Labor Time": [
            {"id": "labor_hours", "type": "number", "label": "Labor Hours", "placeholder": "0.0", "required": True},
        ],
        "Before/After Photos": [
            {"id": "before_photos", "type": "photo_capture", "label": "Before Photos", "required": True},
            {"id": "after_photos", "type": "photo_capture", "label": "After Photos", "required": True},
        ],
    },
    "compliance_safety": {
        "ADA Compliance": [
            {"id": "ada_checklist", "type": "checklist", "label": "ADA Requirements", "required": True,
             "options": ["Accessible path", "Proper signage", "Clearance", "Handrails"]},
        ],
        "Hazard ID": [
            {"id": "hazards", "type": "multi_select", "label": "Hazards Identified",
             "options": ["Uneven ground", "Poor lighting", "Trip hazard", "Blocked access"]},
        ],
        "Site Photos": [
            {"id": "compliance_photos", "type": "photo_capture", "label": "Site Photos", "required": True},
        ],
        "Recommendations": [
            {"id": "recommendations", "type": "text_area", "label": "Recommendations", "rows": 4,
             "placeholder": "Safety improvements or corrections needed"},
        ],
    },
    "customer_signoff": {
        "Name & Role": [
            {"id": "signee_name", "type": "text", "label": "Name", "required": True},
            {"id": "signee_role", "type": "text", "label": "Role/Title", "required": True},
        ],
        "Signature Pad": [
            {"id": "signature", "type": "signature", "label": "Signature", "required": True},
        ],
        "Auto Timestamp": [
            {"id": "signed_at", "type": "timestamp", "label": "Signed At", "auto": True, "required": True},
        ],
        "GPS Lock": [
            {"id": "signature_gps", "type": "gps", "label": "GPS Location", "auto": True, "required": True},
        ],
    },
}

GENERIC_BLOCK_FIELDS = {
    "text_input": {"id": "text_field", "type": "text", "label": "Text Input"},
    "text_area": {"id": "text_area_field", "type": "text_area", "label": "Text Area", "rows": 4},
    "date_time": {"id": "datetime_field", "type": "datetime", "label": "Date & Time"},
    "number": {"id": "number_field", "type": "number", "label": "Number", "placeholder": "0"},
    "dropdown": {"id": "dropdown_field", "type": "dropdown", "label": "Dropdown",
                 "options": ["Option 1", "Option 2", "Option 3"]},
    "multi_select": {"id": "multiselect_field", "type": "multi_select", "label": "Multi Select",
                     "options": ["Option 1", "Option 2", "Option 3"]},
    "checklist": {"id": "checklist_field", "type": "checklist", "label": "Checklist",
                  "options": ["Item 1", "Item 2", "Item 3"]},
    "photo": {"id": "photo_field", "type": "photo_capture", "label": "Photos"},
    "signature": {"id": "signature_field", "type": "signature", "label": "Signature"},
    "file_upload": {"id": "file_field", "type": "file_upload", "label": "File Upload"},
    "parts_used": {"id": "parts_field", "type": "parts_selector", "label": "Parts Used"},
}
