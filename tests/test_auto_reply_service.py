from datetime import datetime
from types import SimpleNamespace
from unittest.mock import patch
from uuid import uuid4

from quizbot.services.auto_reply_service import find_auto_reply, match, render_response, rule_matches
from quizbot.services.result import Lookup


def make_rule(triggers, response="ok", use_regex=False, variables=None, priority=0):
    return SimpleNamespace(
        id=uuid4(),
        trigger_words=triggers,
        response=response,
        use_regex=use_regex,
        variables=variables or {},
        priority=priority,
    )


class TestRuleMatches:
    def test_case_insensitive_substring(self):
        assert rule_matches("HI there", make_rule(["hello", "hi"]))

    def test_accents_ignored(self):
        assert rule_matches("Où est ma facture ?", make_rule(["facture"]))
        assert rule_matches("probleme de reseau", make_rule(["problème"]))

    def test_no_match(self):
        assert not rule_matches("good morning", make_rule(["hello", "hi"]))

    def test_empty_triggers_never_match(self):
        assert not rule_matches("anything", make_rule([]))
        assert not rule_matches("anything", make_rule(["  "]))

    def test_empty_text(self):
        assert not rule_matches("", make_rule(["hi"]))

    def test_regex_rule(self):
        rule = make_rule([r"\bforfait\s+\d+\s*go\b"], use_regex=True)
        assert rule_matches("Je veux le FORFAIT 10 GO", rule)
        assert not rule_matches("forfait illimité", rule)

    def test_invalid_regex_is_skipped(self):
        assert not rule_matches("anything", make_rule(["(unclosed"], use_regex=True))


class TestMatch:
    def test_first_rule_in_order_wins(self):
        high = make_rule(["hi"], "high", priority=10)
        low = make_rule(["hi"], "low", priority=1)
        assert match("hi", [high, low]) is high

    def test_no_rules(self):
        assert match("hi", []) is None


class TestRenderResponse:
    def test_builtin_variables(self):
        rule = make_rule(["hi"], "Today is {{date}} at {{time}}, welcome to {{ company }}")
        now = datetime(2024, 3, 9, 14, 5, 7)
        with patch("quizbot.services.auto_reply_service.settings", SimpleNamespace(company_name="Acme", support_email="x")):
            rendered = render_response(rule, now=now)
        assert rendered == "Today is 09/03/2024 at 14:05:07, welcome to Acme"

    def test_rule_variables_and_unknown_left_intact(self):
        rule = make_rule(["hi"], "Call {{hotline}} {{unknown}}", variables={"hotline": "121"})
        assert render_response(rule) == "Call 121 {{unknown}}"


class TestFindAutoReply:
    def test_priority_order_from_storage(self, db, add_rule):
        add_rule(["hello"], "low", priority=1)
        add_rule(["hello"], "high", priority=5)
        assert find_auto_reply(db, "hello!") == "high"

    def test_ties_keep_creation_order(self, db, add_rule):
        add_rule(["hello"], "first", priority=1)
        add_rule(["hello"], "second", priority=1)
        assert find_auto_reply(db, "hello") == "first"

    def test_inactive_rules_ignored(self, db, add_rule):
        add_rule(["hello"], "disabled", priority=9, is_active=False)
        add_rule(["hello"], "enabled", priority=1)
        assert find_auto_reply(db, "hello") == "enabled"

    def test_no_rules_falls_through(self, db):
        assert find_auto_reply(db, "hello") is None

    def test_unreachable_rules_fall_through(self):
        with patch(
            "quizbot.services.auto_reply_service.list_active_rules",
            return_value=Lookup.failure("connection refused"),
        ):
            assert find_auto_reply(object(), "hello") is None
