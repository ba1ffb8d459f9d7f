"""
Tests for the persona registry.
"""

import pytest

from code_debugger.personas import Persona, all_profiles, messages_for, profile_for


class TestMessagesFor:
    """Tests for messages_for."""

    @pytest.mark.parametrize("persona", list(Persona))
    def test_non_empty(self, persona):
        assert len(messages_for(persona)) > 0

    def test_fixed_order(self):
        assert messages_for(Persona.HACKER) == messages_for(Persona.HACKER)
        assert messages_for(Persona.HACKER)[0] == "💻 Initiating breach protocol…"

    def test_personas_differ(self):
        assert messages_for(Persona.HACKER) != messages_for(Persona.CORPORATE)

    def test_accepts_wire_spelling(self):
        assert messages_for("dark-humor") == messages_for(Persona.DARK_HUMOR)

    def test_unknown_persona(self):
        with pytest.raises((KeyError, ValueError)):
            messages_for("pirate")


class TestPersonaParse:
    """Tests for Persona.parse."""

    def test_value(self):
        assert Persona.parse("corporate") == Persona.CORPORATE

    def test_member_name(self):
        assert Persona.parse("DARK_HUMOR") == Persona.DARK_HUMOR

    def test_member_passthrough(self):
        assert Persona.parse(Persona.HACKER) is Persona.HACKER

    def test_whitespace_and_case(self):
        assert Persona.parse("  Hacker ") == Persona.HACKER


class TestProfiles:
    """Tests for persona display metadata."""

    def test_every_persona_has_profile(self):
        assert [p.persona for p in all_profiles()] == list(Persona)

    def test_profile_for(self):
        profile = profile_for(Persona.CORPORATE)
        assert profile.title == "Evil Corporate AI"
