"""
Persona registry.

A persona selects the rotating progress messages shown while a repair is
in flight. The set of personas is closed; asking for one that does not
exist is a programming error.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple


class Persona(str, Enum):
    """Selectable debugger personalities."""

    HACKER = "hacker"
    DARK_HUMOR = "dark-humor"
    CORPORATE = "corporate"

    @classmethod
    def parse(cls, value: "str | Persona") -> "Persona":
        """Accept the wire spelling, the member name, or a member."""
        if isinstance(value, Persona):
            return value
        normalized = value.strip().lower()
        try:
            return cls(normalized)
        except ValueError:
            return cls[normalized.replace("-", "_").upper()]


@dataclass(frozen=True)
class PersonaProfile:
    """Display metadata for a persona."""

    persona: Persona
    title: str
    subtitle: str
    description: str


_MESSAGES: Dict[Persona, Tuple[str, ...]] = {
    Persona.HACKER: (
        "💻 Initiating breach protocol…",
        "🛰️ Uplink established to satellite cluster…",
        "🔓 Bypassing syntax firewalls…",
        "📡 Intercepting stray semicolons…",
        "🧨 Injecting zero-day patches…",
        "💾 Downloading compiler intel from Area 51…",
        "🛸 Negotiating indentation treaties…",
        "🕵️ Writing unit tests behind your back…",
        "🚁 Deploying tactical recursion drones…",
        "⚡ Overclocking logic units to unsafe levels…",
        "🔐 Decrypting indentation anomaly…",
        "🎯 Target acquired: your broken syntax…",
    ),
    Persona.DARK_HUMOR: (
        "💀 Your code died. Performing autopsy…",
        "🧨 Found bug. Placed C4. Step back.",
        "🧯 Putting out the dumpster fire…",
        "😈 Introducing new bugs for company…",
        "🪦 Rest in peace, missing parenthesis…",
        "🫠 Melting spaghetti logic…",
        "🎢 Emotional damage detected. Stabilizing…",
        "🤡 Removing clown logic…",
        "☠️ Your code just flatlined at line 4…",
        "🩸 Bleeding out exceptions everywhere…",
        "⚰️ Preparing funeral for your functions…",
        "👻 Haunted by ghost variables…",
    ),
    Persona.CORPORATE: (
        "📈 Forwarding bugs to upper management…",
        "📊 Selling bug patterns to advertisers…",
        "💼 Performance review: your code failed…",
        "📉 Reducing quality for quarterly forecasts…",
        "🔗 Auditing indentation for tax evasion…",
        "📦 Packaging mistakes as premium subscription…",
        "💸 Converting bugs into billable hours…",
        "🔒 Encrypting code and charging for the key…",
        "💰 Monetizing your runtime errors…",
        "📋 Filing TPS report on your syntax…",
        "🏆 Your bugs exceed shareholder expectations…",
        "⚖️ Escalating to Premium Fixing Department…",
    ),
}

_PROFILES: Dict[Persona, PersonaProfile] = {
    Persona.HACKER: PersonaProfile(
        persona=Persona.HACKER,
        title="Super Hacker",
        subtitle="Elite Terminal Warrior",
        description="Neon cyber-grid with matrix code rain",
    ),
    Persona.DARK_HUMOR: PersonaProfile(
        persona=Persona.DARK_HUMOR,
        title="Dark Humor",
        subtitle="The Roastmaster Compiler",
        description="Purple fog with roasting commentary",
    ),
    Persona.CORPORATE: PersonaProfile(
        persona=Persona.CORPORATE,
        title="Evil Corporate AI",
        subtitle="Profits > People",
        description="Sleek glass with corporate overlays",
    ),
}


def messages_for(persona: "Persona | str") -> Tuple[str, ...]:
    """
    Get the ordered progress messages for a persona.

    Raises:
        ValueError/KeyError: If the persona does not exist
    """
    return _MESSAGES[Persona.parse(persona)]


def profile_for(persona: "Persona | str") -> PersonaProfile:
    """Get display metadata for a persona."""
    return _PROFILES[Persona.parse(persona)]


def all_profiles() -> Tuple[PersonaProfile, ...]:
    return tuple(_PROFILES[p] for p in Persona)
