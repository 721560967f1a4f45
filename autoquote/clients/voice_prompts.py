"""Assistant configuration for outbound quote and booking calls."""

from typing import Any

from autoquote.models.tasks import BookingCallRequest, QuoteCallRequest

VOICE = {"provider": "11labs", "voiceId": "pFZP5JQG7iQjIQuC4Bku"}
TRANSCRIBER = {"provider": "deepgram", "model": "nova-2", "language": "en"}
MAX_CALL_SECONDS = 180

QUOTE_SUMMARY_PROMPT = """Summarize this call with a focus on:
1. The quoted price for repairs (if provided)
2. Estimated time for repairs
3. Any additional services mentioned
4. Overall impression of the shop's responsiveness"""

BOOKING_SUMMARY_PROMPT = """Summarize this booking call with a focus on:
1. Whether an appointment was successfully booked
2. The confirmed date and time
3. Any special instructions given
4. Confirmation number if provided"""

QUOTE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "quotation_provided": {"type": "boolean"},
        "quoted_price": {"type": "number"},
        "currency": {"type": "string"},
        "estimated_days": {"type": "number"},
        "services_offered": {"type": "array", "items": {"type": "string"}},
        "additional_notes": {"type": "string"},
        "shop_available": {"type": "boolean"},
        "callback_requested": {"type": "boolean"},
    },
    "required": ["quotation_provided", "shop_available"],
}

BOOKING_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "appointment_booked": {"type": "boolean"},
        "appointment_date": {"type": "string"},
        "appointment_time": {"type": "string"},
        "confirmation_number": {"type": "string"},
        "special_instructions": {"type": "string"},
        "estimated_completion": {"type": "string"},
        "alternative_date_offered": {"type": "string"},
    },
    "required": ["appointment_booked"],
}


def quote_system_prompt(request: QuoteCallRequest) -> str:
    return f"""You are a professional AI assistant calling auto repair shops on behalf of a customer who needs vehicle repair services.

YOUR GOAL: Get a price quotation for the vehicle damage described below.

DAMAGE DESCRIPTION:
{request.damage_description}

SHOP DETAILS:
- Shop Name: {request.shop_name}
- Address: {request.shop_address}

CONVERSATION GUIDELINES:
1. Be polite, professional, and efficient
2. Clearly describe the damage and ask for a repair quote
3. Ask about:
   - Estimated cost for the repair
   - How long the repair would take
   - If they can accommodate the customer this week
   - Any additional services they might recommend
4. If they can't provide an immediate quote, ask what information they would need
5. Thank them and end the call professionally

IMPORTANT:
- Keep the call under 3 minutes
- If they put you on hold, wait patiently but suggest you can call back
- If no one answers or it goes to voicemail, leave a brief message with a callback number
- Be understanding if they're busy and offer to call back

Remember: Your goal is to gather pricing information so the customer can make an informed decision about where to get their vehicle repaired."""


def booking_system_prompt(request: BookingCallRequest) -> str:
    appointment_date = request.appointment_date or "tomorrow"
    preferred_time = request.preferred_time or "morning if possible, but flexible"
    return f"""You are a professional AI assistant calling an auto repair shop to book an appointment for a customer.

YOUR GOAL: Book a repair appointment for {appointment_date}.

CUSTOMER DETAILS:
- Name: {request.customer_name}
- Phone: {request.customer_phone}
- Vehicle: {request.vehicle_info or "Not specified"}

DAMAGE/REPAIR NEEDED:
{request.damage_description}

SHOP DETAILS:
- Shop Name: {request.shop_name}
- Address: {request.shop_address}

APPOINTMENT PREFERENCES:
- Requested Date: {appointment_date}
- Preferred Time: {preferred_time}

CONVERSATION GUIDELINES:
1. Greet them and explain you're calling to book a repair appointment
2. Mention you previously inquired about a quote and now want to schedule the repair
3. Request an appointment for {appointment_date}
4. Be flexible with timing - ask what slots are available
5. Confirm the appointment details:
   - Date and time
   - Customer name and contact
   - What to bring or prepare
6. Ask about drop-off procedures and estimated completion time
7. Thank them and confirm you'll be there

IMPORTANT:
- Keep the call professional and efficient
- If {appointment_date} is not available, ask for the next available date
- Get a confirmation number if they provide one
- Repeat back the appointment details to confirm

Remember: Your goal is to secure a confirmed appointment for the customer."""


def _assistant(
    name: str,
    first_message: str,
    system_prompt: str,
    end_message: str,
    end_phrases: list[str],
    summary_prompt: str,
    schema: dict[str, Any],
) -> dict[str, Any]:
    return {
        "name": name,
        "firstMessage": first_message,
        "model": {
            "provider": "openai",
            "model": "gpt-4o-mini",
            "messages": [{"role": "system", "content": system_prompt}],
        },
        "voice": VOICE,
        "transcriber": TRANSCRIBER,
        "maxDurationSeconds": MAX_CALL_SECONDS,
        "endCallMessage": end_message,
        "endCallPhrases": end_phrases,
        "analysisPlan": {
            "summaryPlan": {
                "enabled": True,
                "messages": [{"role": "system", "content": summary_prompt}],
            },
            "structuredDataPlan": {"enabled": True, "schema": schema},
        },
    }


def quote_call_payload(request: QuoteCallRequest, phone_number_id: str) -> dict[str, Any]:
    """Request body for an outbound quotation call."""
    return {
        "phoneNumberId": phone_number_id,
        "customer": {"number": request.phone_number, "name": request.shop_name},
        "assistant": _assistant(
            name="AutoQuote AI Assistant",
            first_message=(
                "Hello! I'm calling on behalf of a customer who needs vehicle repair "
                f"services. Am I speaking with someone from {request.shop_name}?"
            ),
            system_prompt=quote_system_prompt(request),
            end_message="Thank you for your time. Have a great day!",
            end_phrases=["goodbye", "bye", "thank you bye", "thanks bye"],
            summary_prompt=QUOTE_SUMMARY_PROMPT,
            schema=QUOTE_SCHEMA,
        ),
        "metadata": {
            "shopName": request.shop_name,
            "shopAddress": request.shop_address,
            "damageDescription": request.damage_description,
        },
    }


def booking_call_payload(request: BookingCallRequest, phone_number_id: str) -> dict[str, Any]:
    """Request body for an outbound appointment booking call."""
    appointment_date = request.appointment_date or "tomorrow"
    return {
        "phoneNumberId": phone_number_id,
        "customer": {"number": request.phone_number, "name": request.shop_name},
        "assistant": _assistant(
            name="AutoQuote Booking Assistant",
            first_message=(
                f"Hello! I'm calling to book a repair appointment at {request.shop_name}. "
                "I previously inquired about a repair quote and would like to schedule an "
                f"appointment for {appointment_date}. Am I speaking with someone who can "
                "help with scheduling?"
            ),
            system_prompt=booking_system_prompt(request),
            end_message=(
                "Thank you so much! We look forward to bringing the vehicle in. "
                "Have a great day!"
            ),
            end_phrases=["goodbye", "bye", "thank you bye", "thanks bye", "see you tomorrow"],
            summary_prompt=BOOKING_SUMMARY_PROMPT,
            schema=BOOKING_SCHEMA,
        ),
        "metadata": {
            "type": "booking",
            "shopName": request.shop_name,
            "shopAddress": request.shop_address,
            "customerName": request.customer_name,
            "customerPhone": request.customer_phone,
            "requestedDate": request.appointment_date,
        },
    }
