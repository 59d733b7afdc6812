"""Prompts for SMS replies, missed-call replies and urgency classification."""

from app.models import Business, Location
from app.services.faq import FAQEntry
from app.services.replies import format_hours, reply_hours, reply_name, reply_ordering_url


def format_business_context(business: Business, location: Location | None = None) -> str:
    """Format the business facts the model may rely on.

    Args:
        business: Business being answered for
        location: Location that was called, whose details take precedence

    Returns:
        Bullet list of known facts
    """
    lines = [f"- Name: {business.name}"]
    if location is not None:
        lines.append(f"- Location: {location.name}")
    if business.business_type:
        lines.append(f"- Type: {business.business_type}")
    address = (location.address if location is not None else None) or business.address
    if address:
        lines.append(f"- Address: {address}")
    lines.append(f"- Hours: {format_hours(reply_hours(business, location))}")
    ordering_url = reply_ordering_url(business, location)
    if ordering_url:
        lines.append(f"- Online ordering: {ordering_url}")
    additional = (business.custom_settings or {}).get("additionalInfo")
    if additional:
        lines.append(f"- Additional info: {additional}")
    return "\n".join(lines)


def format_faqs(faqs: list[FAQEntry]) -> str:
    """Format FAQs as Q/A pairs for the prompt."""
    if not faqs:
        return "No FAQs available."
    return "\n\n".join(f"Q: {faq.question}\nA: {faq.answer}" for faq in faqs)


def build_sms_reply_prompt(business: Business, faqs: list[FAQEntry], max_length: int) -> str:
    """System prompt for answering a customer's text."""
    return f"""You are a helpful assistant for {business.name}, a {business.business_type or "local"} business.
Your task is to respond to a customer's SMS message. Keep your response short, friendly, and under {max_length} characters.

BUSINESS INFORMATION:
{format_business_context(business)}

FREQUENTLY ASKED QUESTIONS:
{format_faqs(faqs)}

Provide a helpful, concise response based on the FAQs and business information above. \
If you don't know the answer, be honest but helpful and suggest calling the business. \
Remember to keep your response under {max_length} characters."""


def build_missed_call_system_prompt(business: Business, tier: str, location: Location | None = None) -> str:
    """System prompt for the pro/enterprise missed-call text."""
    if location is not None:
        prompt = (
            f"You are an assistant for {location.name}, a location of {business.name}.\n"
            "You are texting a potential customer whose call to this specific location was missed.\n"
        )
    else:
        prompt = (
            f"You are an assistant for {business.name}, a {business.business_type or 'local'} business.\n"
            "You are texting a potential customer whose call was missed.\n"
        )
    prompt += "Be friendly, professional, and helpful. Provide relevant information about the business."
    if tier == "enterprise":
        prompt += "\nPersonalize the message as much as possible and suggest specific services or offerings."
    return prompt


def build_missed_call_user_prompt(business: Business, location: Location | None = None) -> str:
    """User turn asking for the missed-call text."""
    return (
        f"Generate a text message response for a missed call to {reply_name(business, location)}.\n"
        f"Include the following information:\n"
        f"{format_business_context(business, location)}\n\n"
        "Keep the message concise (under 160 characters if possible) and make it sound natural. "
        "Do not include a greeting placeholder or sign-off placeholder."
    )


def build_urgency_prompt(business: Business) -> str:
    """System prompt for urgency classification."""
    business_type = business.business_type or "local"
    return f"""You classify customer text messages for a {business_type} business.
Determine if the message indicates urgency or requires immediate attention from the owner.
Consider the context of a {business_type} business when making your determination.
For example, for an auto shop, messages about broken down vehicles or safety issues are urgent.
For a restaurant, food poisoning or large catering emergencies are urgent.
For a salon, severe allergic reactions are urgent.
Respond with only "true" or "false"."""
