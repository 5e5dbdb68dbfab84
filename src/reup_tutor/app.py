"""Interactive CLI application."""
import sys
from typing import Optional

from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TextColumn
from rich.prompt import Confirm, Prompt
from rich.table import Table

from reup_tutor.ai import GeminiTutorAI, TutorAI
from reup_tutor.config import Settings, get_settings
from reup_tutor.dashboard import (
    get_attempt_rows, get_plan_progress, get_plan_summaries, get_section_rows,
    plan_score, session_score,
)
from reup_tutor.errors import TutorError
from reup_tutor.grades import get_grade_color, letter_grade
from reup_tutor.models import SessionRecord
from reup_tutor.navigation import (
    back_to_plan_list, close_feedback, load_state, reconcile, review_session, select_plan,
)
from reup_tutor.quiz import finish_quiz, leave_quiz, start_quiz, update_answers
from reup_tutor.state import FEEDBACK, QUIZ, SETUP, STUDY_PLAN, TutorState
from reup_tutor.study import create_plan, delete_plan
from reup_tutor.transfer import (
    build_export, default_export_filename, export_to_file, import_data, read_import_file,
)

console = Console()

EXIT_WORDS = ("q", "menu")
QUIT_WORDS = ("quit", "exit")


class SessionExitRequested(Exception):
    """Raised when the user leaves a quiz part way through."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer is not None and answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer or ""


def configure_logging(settings: Settings) -> None:
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level.upper(), format="<level>{message}</level>")
    if settings.log_file:
        logger.add(settings.log_file, level="DEBUG", rotation="1 MB")


def parse_command(choice: str) -> tuple[str, Optional[int]]:
    """Split 'open 2' into ('open', 2). A bare number means 'open'."""
    parts = choice.strip().lower().split()
    if not parts:
        return "", None
    if parts[0].isdigit():
        return "open", int(parts[0])
    number = int(parts[1]) if len(parts) > 1 and parts[1].isdigit() else None
    return parts[0], number


def show_welcome():
    console.print(Panel(
        "[bold]Re-up AI[/bold]\n[dim]Interview Prep Study Assistant[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_error(message: str) -> None:
    console.print(Panel(escape(message), title="An Error Occurred", border_style="red"))
    Prompt.ask("[dim]Press Enter to dismiss[/dim]", default="", show_default=False)


def show_commands(commands: list[tuple[str, str]]) -> None:
    console.print("\n[bold]Commands:[/bold]")
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


# Setup screen

def show_plan_list(state: TutorState) -> None:
    summaries = get_plan_summaries(state)
    if not summaries:
        console.print("\n[dim]No study plans yet. Create one to get started![/dim]")
        return
    table = Table(title="Your Study Plans")
    table.add_column("#", justify="right")
    table.add_column("Topic", style="cyan")
    table.add_column("Grade", justify="center")
    table.add_column("Progress")
    for number, s in enumerate(summaries, 1):
        color = get_grade_color(s["grade"])
        table.add_row(
            str(number),
            escape(s["topic"]),
            f"[{color}]{s['grade']}[/{color}]",
            f"{s['attempted']} of {s['total']} topics started",
        )
    console.print(table)


def cmd_new_plan(state: TutorState, ai: TutorAI) -> None:
    topic = Prompt.ask("Main topic")
    context = Prompt.ask("Context or job description [dim](optional)[/dim]", default="", show_default=False)
    with console.status("Building your study plan..."):
        plan = create_plan(state, ai, topic, context)
    console.print(f"[green]Created a plan for {escape(plan.topic)} with {len(plan.sections)} sections.[/green]")


def cmd_import(state: TutorState) -> None:
    file_path = Prompt.ask("File path")
    export_data = read_import_file(file_path)

    def confirm(summary: dict) -> bool:
        console.print(
            f"\nThis {summary['type'].replace('_', ' ')} export contains {summary['plans']} plans "
            f"and {summary['sessions']} quiz sessions."
        )
        if summary["replaced_plans"] or summary["replaced_sessions"]:
            console.print(
                f"[yellow]{summary['replaced_plans']} plans and {summary['replaced_sessions']} sessions "
                f"with the same id will be overwritten.[/yellow]"
            )
        return Confirm.ask("Merge it into your data?", default=False)

    summary = import_data(state, export_data, confirm)
    if summary is None:
        console.print("[dim]Import cancelled.[/dim]")
    else:
        console.print(f"[green]Imported {summary['plans']} plans and {summary['sessions']} sessions.[/green]")


def cmd_export(state: TutorState, plan_id: Optional[str] = None) -> None:
    plan = state.find_plan(plan_id) if plan_id else None
    file_path = Prompt.ask("Save to", default=default_export_filename(plan))
    path = export_to_file(build_export(state, plan_id), file_path)
    console.print(f"[green]Exported to {escape(str(path))}[/green]")


def run_setup_screen(state: TutorState, ai: TutorAI) -> bool:
    show_plan_list(state)
    show_commands([
        ("new", "Create a new study plan"),
        ("open N", "Open plan N"),
        ("delete N", "Delete plan N and its history"),
        ("import", "Import plans from a file"),
        ("export", "Export all plans to a file"),
        ("quit", "Exit"),
    ])
    cmd, number = parse_command(Prompt.ask("\n[bold]>[/bold]", default="new"))
    if cmd == "new":
        cmd_new_plan(state, ai)
    elif cmd in ("open", "delete"):
        if number is None or not 1 <= number <= len(state.study_plans):
            console.print("[red]Pick a plan number from the list.[/red]")
            return True
        plan = state.study_plans[number - 1]
        if cmd == "open":
            select_plan(state, plan.id)
        elif Confirm.ask(f"Delete '{escape(plan.topic)}' and all its history?", default=False):
            removed = delete_plan(state, plan.id)
            console.print(f"[green]Deleted plan and {removed} quiz sessions.[/green]")
    elif cmd == "import":
        cmd_import(state)
    elif cmd == "export":
        cmd_export(state)
    elif cmd in QUIT_WORDS:
        return False
    else:
        console.print("[red]Unknown command. Try again.[/red]")
    return True


# Study plan screen

def show_study_plan(state: TutorState) -> None:
    plan = state.active_plan
    progress = get_plan_progress(state, plan)
    overall = letter_grade(plan_score(state, plan))
    color = get_grade_color(overall)
    bar_filled = int(progress["percent"] / 5)
    bar = f"{'█' * bar_filled}{'░' * (20 - bar_filled)}"
    console.print(Panel(
        f"{escape(plan.summary)}\n\n"
        f"Completion: {bar} {progress['attempted']} of {progress['total']} topics started\n"
        f"Overall Grade: [{color}]{overall}[/{color}]",
        title=escape(plan.topic), border_style="blue",
    ))
    table = Table(title="Your Learning Path")
    table.add_column("#", justify="right")
    table.add_column("Section", style="cyan")
    table.add_column("Difficulty")
    table.add_column("Grade", justify="center")
    table.add_column("Attempts", justify="right")
    for row in get_section_rows(state, plan):
        color = get_grade_color(row["grade"])
        attempts = str(row["attempts"]) + (" [yellow](in progress)[/yellow]" if row["in_progress"] else "")
        table.add_row(
            str(row["number"]), escape(row["title"]), row["difficulty"],
            f"[{color}]{row['grade']}[/{color}]", attempts,
        )
    console.print(table)


def cmd_history(state: TutorState, section_title: str) -> None:
    rows = get_attempt_rows(state, state.active_plan_id, section_title)
    if not rows:
        console.print("[yellow]No attempts at this section yet.[/yellow]")
        return
    table = Table(title=f"Quiz History: {escape(section_title)}")
    table.add_column("Attempt", justify="right")
    table.add_column("Date")
    table.add_column("Status")
    table.add_column("Avg. Grade", justify="center")
    for row in rows:
        status = "Completed" if row["status"] == "completed" else f"In progress ({row['graded']}/{row['total']} graded)"
        table.add_row(f"#{row['attempt']}", row["date"], status, row["grade"])
    console.print(table)
    choice = Prompt.ask("Review attempt # [dim](Enter to go back)[/dim]", default="", show_default=False).strip()
    for row in rows:
        if choice == str(row["attempt"]):
            review_session(state, row["session_id"])
            return


def run_study_plan_screen(state: TutorState, ai: TutorAI) -> bool:
    plan = state.active_plan
    show_study_plan(state)
    show_commands([
        ("quiz N", "Start or resume a quiz on section N"),
        ("new N", "Start section N with fresh questions"),
        ("history N", "Past attempts at section N"),
        ("export", "Export this plan to a file"),
        ("back", "Back to all plans"),
        ("quit", "Exit"),
    ])
    cmd, number = parse_command(Prompt.ask("\n[bold]>[/bold]", default="back"))
    if cmd in ("quiz", "open", "new", "history"):
        if number is None or not 1 <= number <= len(plan.sections):
            console.print("[red]Pick a section number from the list.[/red]")
            return True
        section = plan.sections[number - 1]
        if cmd == "history":
            cmd_history(state, section.title)
        else:
            with console.status(f"Preparing quiz for {escape(section.title)}..."):
                start_quiz(state, ai, plan, section, force_new=(cmd == "new"))
    elif cmd == "export":
        cmd_export(state, plan.id)
    elif cmd == "back":
        back_to_plan_list(state)
    elif cmd in QUIT_WORDS:
        return False
    else:
        console.print("[red]Unknown command. Try again.[/red]")
    return True


# Quiz screen

def grade_with_progress(state: TutorState, ai: TutorAI, record: SessionRecord, answers: list[str]) -> None:
    total = len(record.questions)
    with Progress(TextColumn("{task.description}"), BarColumn(), console=console) as progress:
        task = progress.add_task("Grading...", total=total, completed=record.resume_index)

        def on_progress(current: int, total: int) -> None:
            progress.update(task, completed=current - 1, description=f"Grading answer {current} of {total}")

        finish_quiz(state, ai, record.id, answers, on_progress=on_progress)
        progress.update(task, completed=total)


def run_quiz_screen(state: TutorState, ai: TutorAI) -> bool:
    record = state.active_session
    total = len(record.questions)
    answers = list(record.user_answers)
    console.print(Panel(
        f"[bold]{escape(record.section.title)}[/bold]\n[dim]Type q or menu to save and go back to the plan.[/dim]",
        title=f"Quiz: {escape(record.topic)}", border_style="cyan",
    ))
    if record.graded_answers:
        console.print(f"[dim]{record.resume_index} of {total} answers already graded.[/dim]")
    try:
        for index in range(record.resume_index, total):
            console.print(f"\n[bold]Question {index + 1} of {total}[/bold]")
            console.print(escape(record.questions[index].question))
            answers[index] = session_prompt("Your answer", default=answers[index], show_default=False)
            update_answers(state, record.id, answers)
    except SessionExitRequested:
        leave_quiz(state, record.id, answers)
        console.print("[dim]Answers saved. Resume this quiz from the study plan.[/dim]")
        return True

    if not Confirm.ask("\nSubmit your answers for grading?", default=True):
        leave_quiz(state, record.id, answers)
        return True
    grade_with_progress(state, ai, record, answers)
    return True


# Feedback screen

def show_feedback(record: SessionRecord) -> None:
    overall = letter_grade(session_score(record))
    console.print(Panel(
        f"Here's how you did on \"{escape(record.section.title)}\". Review the feedback to improve.\n"
        f"Average Grade: [{get_grade_color(overall)}]{overall}[/{get_grade_color(overall)}]",
        title="Quiz Feedback", border_style="blue",
    ))
    for number, answer in enumerate(record.graded_answers, 1):
        color = get_grade_color(answer.grade)
        lines = [
            f"[dim]Your answer:[/dim] [italic]{escape(answer.user_answer) or '(no answer)'}[/italic]",
            "",
            f"[bold]Summary[/bold]\n{escape(answer.summary)}",
        ]
        if answer.key_concepts_missed:
            lines.append("\n[bold dark_orange]Key Concepts to Review[/bold dark_orange]")
            lines.extend(f"  • {escape(c)}" for c in answer.key_concepts_missed)
        if answer.suggested_research_links:
            lines.append("\n[bold blue]Suggested Reading[/bold blue]")
            lines.extend(f"  {escape(link)}" for link in answer.suggested_research_links)
        console.print(Panel(
            "\n".join(lines),
            title=f"Q{number}. {escape(answer.question)}",
            subtitle=f"[{color}]{escape(answer.grade)}[/{color}]",
            border_style=color,
        ))


def run_feedback_screen(state: TutorState, ai: TutorAI) -> bool:
    record = state.active_session
    show_feedback(record)
    show_commands([
        ("back", "Back to the study plan"),
        ("retry", "Try again with the same questions"),
        ("new", "Try again with fresh questions"),
        ("quit", "Exit"),
    ])
    cmd, _ = parse_command(Prompt.ask("\n[bold]>[/bold]", default="back"))
    if cmd in ("retry", "new"):
        plan = state.find_plan(record.plan_id)
        close_feedback(state)
        with console.status(f"Preparing quiz for {escape(record.section.title)}..."):
            start_quiz(state, ai, plan, record.section, force_new=(cmd == "new"))
    elif cmd == "back":
        close_feedback(state)
    elif cmd in QUIT_WORDS:
        return False
    else:
        console.print("[red]Unknown command. Try again.[/red]")
    return True


SCREENS = {
    SETUP: run_setup_screen,
    STUDY_PLAN: run_study_plan_screen,
    QUIZ: run_quiz_screen,
    FEEDBACK: run_feedback_screen,
}


def run(state: TutorState, ai: TutorAI) -> None:
    while True:
        screen = SCREENS.get(reconcile(state))
        try:
            if not screen(state, ai):
                console.print("[dim]Good luck with your interviews![/dim]")
                break
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except TutorError as e:
            show_error(str(e))


def main():
    settings = get_settings()
    configure_logging(settings)
    state = load_state(settings.db_path)
    show_welcome()
    run(state, GeminiTutorAI(settings))


if __name__ == "__main__":
    main()
