import pytest
from unittest.mock import patch

from reup_tutor.app import (
    SessionExitRequested, console, parse_command, run, run_feedback_screen, run_quiz_screen,
    run_setup_screen, run_study_plan_screen, session_prompt, show_error, show_feedback,
    show_plan_list, show_study_plan,
)
from reup_tutor.errors import GradingError
from reup_tutor.models import GradedAnswer, Question, Section, SessionRecord, StudyPlan
from reup_tutor.navigation import load_state
from reup_tutor.quiz import finish_quiz, start_quiz
from reup_tutor.state import FEEDBACK, QUIZ, SETUP, STUDY_PLAN
from reup_tutor.study import create_plan


def test_session_exit_requested_is_exception():
    with pytest.raises(SessionExitRequested):
        raise SessionExitRequested()


def test_session_prompt_raises_on_q():
    with patch("reup_tutor.app.Prompt.ask", return_value="q"):
        with pytest.raises(SessionExitRequested):
            session_prompt("test prompt")


def test_session_prompt_raises_on_menu():
    with patch("reup_tutor.app.Prompt.ask", return_value="menu"):
        with pytest.raises(SessionExitRequested):
            session_prompt("test prompt")


def test_session_prompt_returns_normal_input():
    with patch("reup_tutor.app.Prompt.ask", return_value="hello"):
        result = session_prompt("test prompt")
        assert result == "hello"


def test_parse_command():
    assert parse_command("open 2") == ("open", 2)
    assert parse_command("3") == ("open", 3)
    assert parse_command("  Export ") == ("export", None)
    assert parse_command("") == ("", None)


def test_setup_screen_creates_plan(state, fake_ai):
    with patch("reup_tutor.app.Prompt.ask", side_effect=["new", "Topic X", ""]):
        assert run_setup_screen(state, fake_ai) is True
    assert state.view == STUDY_PLAN
    assert state.active_plan.topic == "Topic X"


def test_setup_screen_quit(state, fake_ai):
    with patch("reup_tutor.app.Prompt.ask", return_value="quit"):
        assert run_setup_screen(state, fake_ai) is False


def test_setup_screen_delete_asks_first(state, fake_ai):
    create_plan(state, fake_ai, "Topic X")
    with patch("reup_tutor.app.Prompt.ask", return_value="delete 1"), \
            patch("reup_tutor.app.Confirm.ask", return_value=False):
        run_setup_screen(state, fake_ai)
    assert len(state.study_plans) == 1
    with patch("reup_tutor.app.Prompt.ask", return_value="delete 1"), \
            patch("reup_tutor.app.Confirm.ask", return_value=True):
        run_setup_screen(state, fake_ai)
    assert state.study_plans == []
    assert state.view == SETUP


def test_study_plan_screen_starts_quiz(state, fake_ai):
    create_plan(state, fake_ai, "Topic X")
    with patch("reup_tutor.app.Prompt.ask", return_value="quiz 2"):
        run_study_plan_screen(state, fake_ai)
    assert state.view == QUIZ
    assert state.active_session.section.title == "Section 2"


def test_quiz_screen_exit_saves_answers(tmp_db, state, fake_ai):
    plan = create_plan(state, fake_ai, "Topic X")
    record = start_quiz(state, fake_ai, plan, plan.sections[0])
    with patch("reup_tutor.app.Prompt.ask", side_effect=["first answer", "second answer", "q"]):
        run_quiz_screen(state, fake_ai)
    assert state.view == STUDY_PLAN
    stored = load_state(tmp_db).find_session(record.id)
    assert stored.user_answers[:3] == ["first answer", "second answer", ""]
    assert stored.status == "in-progress"


def test_quiz_screen_submits_for_grading(state, fake_ai):
    plan = create_plan(state, fake_ai, "Topic X")
    start_quiz(state, fake_ai, plan, plan.sections[0])
    with patch("reup_tutor.app.Prompt.ask", side_effect=["a", "b", "c", "d", "e"]), \
            patch("reup_tutor.app.Confirm.ask", return_value=True):
        run_quiz_screen(state, fake_ai)
    assert state.view == FEEDBACK
    assert [c[1] for c in fake_ai.grade_calls] == ["a", "b", "c", "d", "e"]


def test_quiz_screen_only_asks_ungraded_questions(state, fake_ai):
    plan = create_plan(state, fake_ai, "Topic X")
    record = start_quiz(state, fake_ai, plan, plan.sections[0])
    fake_ai.fail_grading_at = {4}
    with pytest.raises(GradingError):
        finish_quiz(state, fake_ai, record.id, ["a", "b", "c", "d", "e"])
    fake_ai.fail_grading_at = set()
    with patch("reup_tutor.app.Prompt.ask", side_effect=["d", "e"]) as ask, \
            patch("reup_tutor.app.Confirm.ask", return_value=True):
        run_quiz_screen(state, fake_ai)
    assert ask.call_count == 2
    assert state.view == FEEDBACK


def test_feedback_screen_retry_reuses_questions(state, fake_ai):
    plan = create_plan(state, fake_ai, "Topic X")
    record = start_quiz(state, fake_ai, plan, plan.sections[0])
    finish_quiz(state, fake_ai, record.id, ["a"] * 5)
    with patch("reup_tutor.app.Prompt.ask", return_value="retry"):
        run_feedback_screen(state, fake_ai)
    assert state.view == QUIZ
    assert state.active_session.id != record.id
    assert len(fake_ai.question_calls) == 1


def test_run_loop_shows_errors_and_continues(state, fake_ai):
    fake_ai.fail_plan = True
    answers = ["new", "Topic X", "", "", "quit"]
    with patch("reup_tutor.app.Prompt.ask", side_effect=answers), \
            patch("reup_tutor.app.show_error") as show_error:
        run(state, fake_ai)
    show_error.assert_called_once()
    assert "study plan" in show_error.call_args.args[0]
    assert state.view == SETUP


def test_bracketed_text_is_printed_literally(state):
    plan = StudyPlan(id="p1", topic="Rust [/] lifetimes", summary="Borrowing [bold]rules",
                     sections=[Section(title="[/red] Traits")])
    state.set_study_plans([plan])
    state.set_active_plan_id("p1")
    with console.capture() as capture:
        show_plan_list(state)
        show_study_plan(state)
    output = capture.get()
    assert "Rust [/] lifetimes" in output
    assert "Borrowing [bold]rules" in output
    assert "[/red] Traits" in output


def test_feedback_with_bracketed_ai_text(state):
    record = SessionRecord(
        id="s1", plan_id="p1", topic="[/]", section=Section(title="[/] Traits"),
        questions=[Question(question="What is [T]?")], user_answers=["[/i]"],
        graded_answers=[GradedAnswer(
            question="What is [T]?", user_answer="[/i]", grade="B", summary="Close [/]",
            key_concepts_missed=["[dim]"], suggested_research_links=["https://x.test/[a]"],
        )],
        status="completed",
    )
    with console.capture() as capture:
        show_feedback(record)
    output = capture.get()
    assert "Close [/]" in output
    assert "https://x.test/[a]" in output


def test_error_message_with_brackets(state):
    with console.capture() as capture, patch("reup_tutor.app.Prompt.ask", return_value=""):
        show_error('Failed to start the quiz for "[/] Traits".')
    assert "[/] Traits" in capture.get()
