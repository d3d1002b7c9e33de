"""Default reference catalogue seeded by ``kurator init-db``."""

CATEGORIES = (
    "influence_status",
    "influence_type",
    "communication_channel",
    "contact_source",
    "interaction_type",
    "interaction_result",
    "risk_sphere",
    "organization",
    "file_extensions",
)

# category -> [(code, name, description)], sort order follows list position
REFERENCE_SEEDS: dict[str, list[tuple[str, str, str | None]]] = {
    "influence_status": [
        ("A", "Status A", "High level of influence"),
        ("B", "Status B", "Medium level of influence"),
        ("C", "Status C", "Low level of influence"),
        ("D", "Status D", "Minimal level of influence"),
    ],
    "influence_type": [
        ("NAV", "Navigational", "Provides access and introductions"),
        ("INT", "Interpretive", "Helps understand positions and context"),
        ("FUN", "Functional", "Helps resolve issues and affects processes"),
        ("REP", "Reputational", "Shapes public perception"),
        ("ANA", "Analytical", "Gives strategic assessment and forecasts"),
    ],
    "communication_channel": [
        ("OFF", "Official", None),
        ("MED", "Through an intermediary", None),
        ("ASS", "Through an association", None),
        ("PER", "Personal", None),
        ("JUR", "Legal", None),
    ],
    "contact_source": [
        ("PER", "Personal acquaintance", None),
        ("ASS", "Association", None),
        ("REC", "Recommendation", None),
        ("EVE", "Event", None),
        ("MED", "Media", None),
        ("OTH", "Other", None),
    ],
    "interaction_type": [
        ("MEE", "Meeting", None),
        ("CAL", "Call", None),
        ("MSG", "Correspondence", None),
        ("EVE", "Event", None),
        ("OTH", "Other", None),
    ],
    "interaction_result": [
        ("POS", "Positive", None),
        ("NEU", "Neutral", None),
        ("NEG", "Negative", None),
        ("DEL", "Postponed", None),
        ("NON", "No result", None),
    ],
    "risk_sphere": [
        ("MED", "Media", None),
        ("JUR", "Legal pressure", None),
        ("POL", "Political", None),
        ("ECO", "Economic", None),
        ("FOR", "Law enforcement", None),
        ("COM", "Communications", None),
        ("OTH", "Other", None),
    ],
    "organization": [
        ("PAR", "Parliament", None),
        ("CAB", "Cabinet of Ministers", None),
        ("CB", "Central Bank", None),
        ("SEC", "Security Service", None),
        ("MED", "Media", None),
        ("OTH", "Other", None),
    ],
    "file_extensions": [
        ("PDF", "PDF", "Adobe PDF documents"),
        ("DOC", "DOC", "Microsoft Word"),
        ("DOCX", "DOCX", "Microsoft Word (new format)"),
        ("XLS", "XLS", "Microsoft Excel"),
        ("XLSX", "XLSX", "Microsoft Excel (new format)"),
        ("JPG", "JPG", "JPEG images"),
        ("JPEG", "JPEG", "JPEG images"),
        ("PNG", "PNG", "PNG images"),
        ("GIF", "GIF", "GIF images"),
        ("TXT", "TXT", "Text files"),
    ],
}
