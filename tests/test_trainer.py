"""
tests/test_trainer.py: Unit tests for the Trainer feedback loop.
"""
from unittest.mock import MagicMock

from conftest import SEED_URL, SEED_BODY, build_page, build_response, form_body
from pagetrainer.scanner.core.elements import ElementScope
from pagetrainer.scanner.core.trainer import Trainer, TrainingOutcome, TrainingResult


# ---------------------------------------------------------------------------
# Seed handling
# ---------------------------------------------------------------------------


class TestSeed:
    def test_push_without_seed_is_noop(self, trainer, frontier):
        result = trainer.push(build_response(body=form_body("/new", "a")))
        assert result.outcome is TrainingOutcome.NOT_SEEDED
        assert not result
        assert frontier.pages == []

    def test_seed_is_deep_copied(self, trainer):
        page = build_page()
        trainer.set_seed(page)
        page.forms.clear()
        page.body = "changed"

        assert trainer.page is not page
        assert len(trainer.page.forms) == 1
        assert trainer.page.body == SEED_BODY

    def test_init_alias(self, trainer):
        trainer.init(build_page())
        assert trainer.page.url == SEED_URL

    def test_seed_elements_are_known(self, seeded_trainer, frontier):
        # Same elements as the seed, different body
        result = seeded_trainer.push(build_response(body=SEED_BODY + "<p>footer</p>"))
        assert result.outcome is TrainingOutcome.NO_CHANGE
        assert frontier.pages == []


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------


class TestGuards:
    def test_limit_reached_skips(self, options, frontier):
        trainer = Trainer(options, frontier=frontier, limit_reached=lambda: True)
        trainer.set_seed(build_page())
        result = trainer.push(build_response(body=form_body("/new", "a")))
        assert result.outcome is TrainingOutcome.LIMIT_REACHED
        assert frontier.pages == []

    def test_not_seeded_checked_before_limit(self, options, frontier):
        trainer = Trainer(options, frontier=frontier, limit_reached=lambda: True)
        assert trainer.push(build_response()).outcome is TrainingOutcome.NOT_SEEDED

    def test_binary_response_skipped(self, seeded_trainer):
        response = build_response(body="\x89PNG....", headers={"Content-Type": "image/png"})
        assert seeded_trainer.push(response).outcome is TrainingOutcome.NOT_TEXT

    def test_empty_body_skipped(self, seeded_trainer):
        assert seeded_trainer.push(build_response(body="")).outcome is TrainingOutcome.NOT_TEXT

    def test_redundant_path_skipped_without_counting(self, options, seeded_trainer, frontier):
        options.redundant_patterns = [r"/calendar/.*"]
        url = "http://test.com/calendar/2024/01"
        result = seeded_trainer.push(build_response(url=url, body=form_body("/new", "a")))

        assert result.outcome is TrainingOutcome.REDUNDANT
        assert seeded_trainer.trainings_for(url) == 0
        assert frontier.pages == []

    def test_excluded_resource_skipped(self, options, seeded_trainer):
        options.exclude_patterns = ["logout"]
        result = seeded_trainer.push(build_response(url="http://test.com/logout", body=form_body("/x", "a")))
        assert result.outcome is TrainingOutcome.EXCLUDED

    def test_max_trainings_checked_before_redundancy(self, options, seeded_trainer):
        options.max_trainings_per_url = 1
        assert seeded_trainer.push(build_response(body=form_body("/one", "a")))

        options.redundant_patterns = [r"/page"]
        result = seeded_trainer.push(build_response(body=form_body("/two", "a")))
        assert result.outcome is TrainingOutcome.MAX_TRAININGS

    def test_skip_results_carry_messages(self, options, seeded_trainer):
        options.redundant_patterns = [r"/page"]
        result = seeded_trainer.push(build_response(body=form_body("/x", "a")))
        assert result.message == "Matched redundancy filters"


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------


class TestAnalyze:
    def test_identical_response_is_idempotent(self, seeded_trainer, frontier):
        first = seeded_trainer.push(build_response())
        second = seeded_trainer.push(build_response())

        assert first.outcome is TrainingOutcome.NO_CHANGE
        assert second.outcome is TrainingOutcome.NO_CHANGE
        assert seeded_trainer.trainings_for(SEED_URL) == 0
        assert frontier.pages == []

    def test_new_form_emits_page(self, seeded_trainer, frontier):
        result = seeded_trainer.push(build_response(body=form_body("/search", "q")))

        assert result
        assert result.trained
        assert frontier.pages == [result.page]
        page = result.page
        assert [f.action for f in page.forms] == ["http://test.com/search"]
        assert page.links == []
        assert page.cookies == []
        assert seeded_trainer.trainings_for(SEED_URL) == 1

    def test_emitted_page_takes_response_attributes(self, seeded_trainer):
        url = "http://test.com/other?x=1&y=2"
        response = build_response(
            url=url,
            body=form_body("/search", "q"),
            status=201,
            method="post",
            headers={"Content-Type": "text/html", "X-Test": "1"},
        )
        page = seeded_trainer.push(response).page

        assert page.url == url
        assert page.query_vars == {"x": "1", "y": "2"}
        assert page.code == 201
        assert page.method == "POST"
        assert page.body == response.body
        assert page.response_headers["X-Test"] == "1"
        assert page.document is not None

    def test_new_link_emits_page(self, seeded_trainer):
        body = SEED_BODY.replace("/about", "/news?page=2")
        page = seeded_trainer.push(build_response(body=body)).page
        assert [l.url for l in page.links] == ["http://test.com/news?page=2"]
        assert page.forms == []

    def test_new_elements_scoped_to_page(self, seeded_trainer):
        parsed = build_page(body=form_body("/search", "q"))
        assert parsed.forms[0].scope is ElementScope.SHARED

        page = seeded_trainer.push(build_response(body=form_body("/search", "q"))).page
        assert page.forms[0].scope is ElementScope.PAGE

    def test_forms_deduplicated_across_responses(self, seeded_trainer, frontier):
        first = seeded_trainer.push(build_response(body=form_body("/login2", "a", "b")))
        second = seeded_trainer.push(build_response(body=form_body("/login2", "b", "a", extra="<p>x</p>")))

        assert first.trained
        assert second.outcome is TrainingOutcome.NO_CHANGE
        emitted = [form for page in frontier.pages for form in page.forms]
        assert len(emitted) == 1

    def test_cookie_only_delta(self, seeded_trainer):
        response = build_response(set_cookies=["session=abc123; Path=/; HttpOnly"])
        result = seeded_trainer.push(response)

        assert result.trained
        page = result.page
        assert [c.name for c in page.cookies] == ["session"]
        assert page.cookies[0].scope is ElementScope.PAGE
        assert page.forms == []
        assert page.links == []

    def test_json_valued_cookie_is_a_delta(self, seeded_trainer):
        result = seeded_trainer.push(build_response(set_cookies=['prefs={"theme":"dark"}; Path=/']))
        assert result.trained
        assert [c.name for c in result.page.cookies] == ["prefs"]

    def test_every_cookie_header_contributes(self, seeded_trainer):
        result = seeded_trainer.push(build_response(set_cookies=["tracker=a b; Path=/", "sid=1"]))
        assert {"tracker", "sid"} <= {c.name for c in result.page.cookies}

    def test_cookie_rotation_of_known_name_is_not_new(self, seeded_trainer):
        assert seeded_trainer.push(build_response(set_cookies=["sid=1"])).trained
        result = seeded_trainer.push(build_response(set_cookies=["sid=2"]))
        assert result.outcome is TrainingOutcome.NO_CHANGE

    def test_max_trainings_cap(self, seeded_trainer, frontier):
        for i in range(25):
            assert seeded_trainer.push(build_response(body=form_body(f"/f{i}", "a"))).trained

        result = seeded_trainer.push(build_response(body=form_body("/f25", "a")))
        assert result.outcome is TrainingOutcome.MAX_TRAININGS
        assert len(frontier.pages) == 25
        assert seeded_trainer.trainings_for(SEED_URL) == 25

    def test_cap_is_per_url(self, options, seeded_trainer):
        options.max_trainings_per_url = 1
        assert seeded_trainer.push(build_response(body=form_body("/a", "x")))
        assert seeded_trainer.push(build_response(url="http://test.com/b", body=form_body("/b", "x")))


# ---------------------------------------------------------------------------
# Observers and fingerprinting
# ---------------------------------------------------------------------------


class TestObservers:
    def test_observers_called_in_order_before_frontier(self, seeded_trainer, frontier):
        calls = []
        seeded_trainer.on_new_page(lambda page: calls.append(("first", len(frontier.pages))))
        seeded_trainer.on_new_page(lambda page: calls.append(("second", len(frontier.pages))))

        seeded_trainer.push(build_response(body=form_body("/new", "a")))
        assert calls == [("first", 0), ("second", 0)]
        assert len(frontier.pages) == 1

    def test_failing_observer_is_isolated(self, seeded_trainer, frontier):
        seen = []

        def broken(page):
            raise RuntimeError("observer bug")

        seeded_trainer.on_new_page(broken)
        seeded_trainer.on_new_page(seen.append)

        result = seeded_trainer.push(build_response(body=form_body("/new", "a")))
        assert result.trained
        assert seen == [result.page]
        assert frontier.pages == [result.page]

    def test_fingerprinting_when_enabled(self, options, frontier):
        options.fingerprint = True
        trainer = Trainer(options, frontier=frontier)
        trainer.set_seed(build_page())

        response = build_response(
            body=form_body("/new", "a"),
            headers={"Content-Type": "text/html", "X-Powered-By": "PHP/8.2"},
        )
        assert "PHP" in trainer.push(response).page.platforms

    def test_fingerprinting_failure_does_not_block(self, options, frontier):
        options.fingerprint = True
        fingerprinter = MagicMock()
        fingerprinter.fingerprint.side_effect = RuntimeError("boom")
        trainer = Trainer(options, frontier=frontier, fingerprinter=fingerprinter)
        trainer.set_seed(build_page())

        assert trainer.push(build_response(body=form_body("/new", "a"))).trained
        assert len(frontier.pages) == 1

    def test_fingerprinting_disabled(self, seeded_trainer):
        response = build_response(
            body=form_body("/new", "a"),
            headers={"Content-Type": "text/html", "X-Powered-By": "PHP/8.2"},
        )
        assert seeded_trainer.push(response).page.platforms == []


# ---------------------------------------------------------------------------
# Failure containment
# ---------------------------------------------------------------------------


class TestFailures:
    def test_internal_error_becomes_failed_result(self, seeded_trainer, monkeypatch, frontier):
        def boom(*args, **kwargs):
            raise RuntimeError("db exploded")

        monkeypatch.setattr(seeded_trainer._db, "update", boom)
        result = seeded_trainer.push(build_response(body=form_body("/new", "a")))

        assert result.outcome is TrainingOutcome.FAILED
        assert isinstance(result.error, RuntimeError)
        assert not result
        assert "db exploded" in result.message
        assert frontier.pages == []

    def test_failing_limit_oracle_is_contained(self, options, frontier):
        def oracle():
            raise ValueError("oracle down")

        trainer = Trainer(options, frontier=frontier, limit_reached=oracle)
        trainer.set_seed(build_page())
        assert trainer.push(build_response()).outcome is TrainingOutcome.FAILED

    def test_failing_frontier_is_contained(self, options):
        frontier = MagicMock()
        frontier.push_to_page_queue.side_effect = RuntimeError("queue full")
        trainer = Trainer(options, frontier=frontier)
        trainer.set_seed(build_page())

        result = trainer.push(build_response(body=form_body("/new", "a")))
        assert result.outcome is TrainingOutcome.FAILED

        # Elements were registered before the hand-off failed and stay known
        assert trainer.trainings_for(SEED_URL) == 1
        frontier.push_to_page_queue.side_effect = None
        again = trainer.push(build_response(body=form_body("/new", "a")))
        assert again.outcome is TrainingOutcome.NO_CHANGE
        frontier.push_to_page_queue.assert_called_once()

    def test_response_without_request_is_contained(self, seeded_trainer, frontier):
        response = build_response(body=form_body("/new", "a"))
        response.request = None

        result = seeded_trainer.push(response)
        assert result.outcome is TrainingOutcome.FAILED
        assert result.url == SEED_URL
        assert frontier.pages == []

    def test_handler_ignores_response_without_request(self, seeded_trainer, frontier):
        response = build_response(body=form_body("/new", "a"))
        response.request = None
        seeded_trainer.handle_response(response)
        assert frontier.pages == []


def test_training_result_truthiness():
    assert TrainingResult(TrainingOutcome.TRAINED)
    for outcome in TrainingOutcome:
        if outcome is not TrainingOutcome.TRAINED:
            assert not TrainingResult(outcome)
