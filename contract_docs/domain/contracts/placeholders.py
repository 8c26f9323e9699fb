"""Placeholder vocabulary shared by template authors and the backends"""

# Text tokens, in the order they are replaced. Must match the template exactly.
TEXT_PLACEHOLDERS = (
    "contract_number",
    "contract_date",
    "contract_type",
    "promoter_name_en",
    "promoter_name_ar",
    "promoter_email",
    "promoter_mobile_number",
    "promoter_id_card_number",
    "promoter_passport_number",
    "first_party_name_en",
    "first_party_name_ar",
    "first_party_crn",
    "first_party_email",
    "first_party_phone",
    "second_party_name_en",
    "second_party_name_ar",
    "second_party_crn",
    "second_party_email",
    "second_party_phone",
    "job_title",
    "department",
    "work_location",
    "basic_salary",
    "contract_start_date",
    "contract_end_date",
    "special_terms",
    "currency",
)

# Image token -> ContractData field holding the source image URL
IMAGE_PLACEHOLDERS = {
    "promoter_id_card_image": "promoter_id_card_url",
    "promoter_passport_image": "promoter_passport_url",
}


def token(name: str) -> str:
    """Return the literal template marker for a placeholder name"""
    return "{{" + name + "}}"
