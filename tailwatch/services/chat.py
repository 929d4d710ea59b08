"""
Chat completion bridge - answers pilot questions about the aircraft.

Builds a compact context string from the aircraft's flight history,
then either:
- forwards the trailing conversation to OpenAI with a fixed system prompt, or
- when no OpenAI key is configured, returns a templated reply assembled
  from the same context without calling out.

Provider failures are mapped to a few user-facing messages. Raw provider
error bodies are logged, never returned.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, List, Optional

from openai import OpenAI, APIStatusError, OpenAIError

from tailwatch.analytics import summarize_year, flight_date
from tailwatch.config import config
from tailwatch.services.flightaware import FlightAwareClient, FlightAwareError, flightaware_client

logger = logging.getLogger(__name__)

CHAT_ROLES = ('user', 'assistant', 'system')

SYSTEM_PROMPT = """You are TailWatch Assistant, a helpful AI assistant for a pilot. You have access to real-time flight data and can answer questions about:

{context}

You should:
- Be friendly and professional
- Use aviation terminology appropriately
- Provide specific data when available
- Be helpful with flight planning, maintenance questions, and aircraft information
- If you don't have specific data, be honest about it
- Focus on being useful for a pilot managing their aircraft

Keep responses concise but informative. Use nautical miles (nm) for distances and standard aviation terminology."""

MISSING_KEY_NOTE = 'To enable advanced AI responses, please configure the OPENAI_API_KEY environment variable.'

# User-facing messages for chat provider failures
AUTH_ERROR_MESSAGE = "There's an issue with the AI service authentication. Please check the API key configuration."
RATE_LIMIT_MESSAGE = 'The AI service is currently busy. Please try again in a moment.'
UNAVAILABLE_MESSAGE = 'The AI service is temporarily unavailable. Please try again later.'
GENERIC_ERROR_MESSAGE = "I'm having trouble connecting to my AI service right now."
EMPTY_REPLY_MESSAGE = "I'm sorry, I couldn't generate a response."


@dataclass(frozen=True)
class ChatTurn:
    """One message of a conversation."""
    role: str
    content: str

    @classmethod
    def from_dict(cls, data: Any) -> Optional['ChatTurn']:
        """Returns None for anything that isn't a well-formed turn."""
        if not isinstance(data, dict):
            return None
        role = data.get('role')
        content = data.get('content')
        if role not in CHAT_ROLES or not isinstance(content, str):
            return None
        return cls(role=role, content=content)

    def to_message(self) -> dict:
        return {'role': self.role, 'content': self.content}


@dataclass
class ChatReply:
    """Assistant reply, with a short error tag when the provider failed."""
    response: str
    error: Optional[str] = None


def classify_provider_error(status: Optional[int]) -> str:
    """Map a chat provider HTTP status to a user-facing message."""
    if status == 401:
        return AUTH_ERROR_MESSAGE
    if status == 429:
        return RATE_LIMIT_MESSAGE
    if status is not None and status >= 500:
        return UNAVAILABLE_MESSAGE
    return GENERIC_ERROR_MESSAGE


class ChatService:
    """
    Answers questions using flight context and an OpenAI chat model.

    The OpenAI client is created lazily so that a missing key never
    results in an outbound call.
    """

    def __init__(
        self,
        flight_client: FlightAwareClient,
        api_key: Optional[str] = None,
        aircraft_ident: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        history_window: Optional[int] = None,
        history_start: Optional[datetime] = None,
        context_max_pages: Optional[int] = None,
        openai_factory: Callable[..., Any] = OpenAI,
    ):
        self.flight_client = flight_client
        self.api_key = api_key
        self.aircraft_ident = aircraft_ident or config.aircraft_ident
        self.model = model or config.openai.model
        self.max_tokens = config.openai.max_tokens if max_tokens is None else max_tokens
        self.temperature = config.openai.temperature if temperature is None else temperature
        self.history_window = config.openai.history_window if history_window is None else history_window
        self.history_start = config.flightaware.history_start if history_start is None else history_start
        self.context_max_pages = config.openai.context_max_pages if context_max_pages is None else context_max_pages
        self._openai_factory = openai_factory
        self._openai = None

        if not self.api_key:
            logger.warning('OpenAI API key not configured - chat will use templated replies')

    @classmethod
    def from_config(cls) -> 'ChatService':
        return cls(flight_client=flightaware_client, api_key=config.openai.api_key)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def build_context(self, now: Optional[datetime] = None) -> str:
        """
        Summarise the aircraft's flights for the prompt.

        Covers the current calendar year and the three most recent flights.
        Falls back to a one-line notice if FlightAware is unavailable.
        """
        now = now or datetime.now(timezone.utc)
        ident = self.aircraft_ident

        try:
            page = self.flight_client.get_flights_by_ident(
                ident,
                start=self.history_start,
                end=now,
                max_pages=self.context_max_pages,
            )
        except FlightAwareError as e:
            logger.warning(f'Could not fetch flight context: {e.message}')
            return f'Aircraft: {ident} (flight data temporarily unavailable)'

        flights = page.flights
        summary = summarize_year(flights, now.year)
        latest = flights[0] if flights else None

        lines = [
            f'Current aircraft data for {ident}:',
            f'- Total flights in {summary.year}: {summary.flight_count}',
            f'- Total miles flown in {summary.year}: {summary.total_miles} nautical miles',
            f'- Angel Flights: {summary.angel_flight_count} flights, '
            f'{summary.angel_flight_miles} nautical miles',
            f'- Aircraft type: {(latest and latest.aircraft_type) or "Unknown"}',
            f'- Recent flight status: {(latest and latest.status) or "Unknown"}',
        ]

        if flights:
            lines.append('')
            lines.append('Recent flights:')
            for index, flight in enumerate(flights[:3], start=1):
                when = flight_date(flight)
                date = when.strftime('%m/%d/%Y') if when else 'unknown date'
                origin = (flight.origin and flight.origin.code) or '?'
                destination = (flight.destination and flight.destination.code) or '?'
                lines.append(
                    f'{index}. {origin} -> {destination} on {date} '
                    f'({flight.route_distance or 0} nm, {flight.operator or "Unknown operator"})'
                )

        return '\n'.join(lines)

    def reply(self, message: str, history: Iterable[Any] = ()) -> ChatReply:
        """Answer one user message given the prior conversation."""
        context = self.build_context()

        if not self.is_configured:
            return ChatReply(response=self.templated_reply(message, context))

        turns = [t for t in (ChatTurn.from_dict(h) for h in history) if t]
        messages = [{'role': 'system', 'content': SYSTEM_PROMPT.format(context=context)}]
        if self.history_window > 0:
            messages.extend(t.to_message() for t in turns[-self.history_window:])
        messages.append({'role': 'user', 'content': message})

        try:
            completion = self._client().chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except APIStatusError as e:
            logger.error(f'OpenAI API error: status={e.status_code} details={e.message}')
            return ChatReply(response=classify_provider_error(e.status_code), error='OpenAI API error')
        except OpenAIError as e:
            logger.error(f'OpenAI request failed: {e}')
            return ChatReply(response=GENERIC_ERROR_MESSAGE, error='OpenAI API error')

        content = None
        if completion.choices:
            content = completion.choices[0].message.content
        return ChatReply(response=(content or '').strip() or EMPTY_REPLY_MESSAGE)

    def templated_reply(self, message: str, context: str) -> str:
        """Deterministic reply used when no OpenAI key is configured."""
        lower = message.lower()
        response = (
            f"Hi! I'm your TailWatch assistant. I have access to your flight data for "
            f'{self.aircraft_ident}, but I need an OpenAI API key to provide advanced AI responses.\n\n'
        )

        if 'flight' in lower or 'angel' in lower:
            response += f'Based on your current data:\n{context}\n\n{MISSING_KEY_NOTE}'
        elif 'help' in lower:
            response += (
                'I can help you with information about your aircraft and flights. Try asking about:\n'
                '- Total flights this year\n'
                '- Angel Flight statistics\n'
                '- Recent flight history\n'
                '- Flight distances and destinations\n\n'
                f'{MISSING_KEY_NOTE}'
            )
        else:
            response += f'I can provide basic flight information. {context}\n\n{MISSING_KEY_NOTE}'

        return response

    def _client(self):
        if self._openai is None:
            self._openai = self._openai_factory(api_key=self.api_key)
        return self._openai


# Singleton instance
chat_service = ChatService.from_config()
