"""Console-driven UI loops for the novel player and editor."""
from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Literal, Tuple

from novella.data import JsonFileStore
from novella.domain.state import PlaybackPhase
from novella.presentation.cli import config, render
from novella.services import (
    ContentStore,
    GenerationInProgressError,
    PlaybackEngine,
    ProgressStore,
    SceneGenerationService,
    StoryEditor,
    StructuralEditError,
)
from novella.services.controllers import SessionController

MenuAction = Literal["new_game", "continue", "editor", "quit"]
PlayOutcome = Literal["home", "quit"]


def build_session(settings: Dict[str, Any], base_dir: str | None = None) -> SessionController:
    """Construct the session controller with file-backed stores."""
    store = JsonFileStore(base_dir)
    return SessionController(
        content_store=ContentStore(store),
        progress_store=ProgressStore(store),
        generation_service=SceneGenerationService(),
        admin_code=settings["admin_code"],
    )


def main(settings: Dict[str, Any] | None = None) -> None:
    """Start the interactive CLI session."""
    settings = settings or config.load_config()
    session = build_session(settings)
    print(f"=== {session.story.title} ===")
    running = True
    while running:
        action = _main_menu_loop(session.has_save)
        if action == "quit":
            running = False
        elif action == "new_game":
            running = _run_play_loop(session.start_new_game(), settings) != "quit"
        elif action == "continue":
            running = _run_play_loop(session.continue_game(), settings) != "quit"
        else:
            running = _run_admin(session, settings)
        session.return_home()
    print("Goodbye!")


def _main_menu_options(has_save: bool) -> List[Tuple[MenuAction, str]]:
    options: List[Tuple[MenuAction, str]] = [("new_game", "New Game")]
    if has_save:
        options.append(("continue", "Continue"))
    options.extend([("editor", "Editor"), ("quit", "Quit")])
    return options


def _main_menu_loop(has_save: bool) -> MenuAction:
    options = _main_menu_options(has_save)
    while True:
        render.render_menu("Main Menu", [label for _, label in options])
        index = _prompt_index(len(options))
        if index is not None:
            return options[index][0]


# ----------------------------------------------------------------------
# Player
# ----------------------------------------------------------------------


def _run_play_loop(engine: PlaybackEngine, settings: Dict[str, Any]) -> PlayOutcome:
    """Drive the playback engine until the player leaves."""
    shown_scene: str | None = None
    shown_step: Tuple[str, int] | None = None
    while True:
        view = engine.current_view()
        if view.scene_id != shown_scene:
            render.render_scene_header(view)
            shown_scene = view.scene_id
        if (view.scene_id, view.step_index) != shown_step:
            shown_step = (view.scene_id, view.step_index)
            if view.phase in (PlaybackPhase.ADVANCING, PlaybackPhase.AWAITING_INLINE_CHOICE):
                _present_line(engine, settings)

        if view.phase is PlaybackPhase.AWAITING_INLINE_CHOICE:
            render.render_choices([choice.text for choice in view.inline_choices])
            picked = _prompt_play_choice(len(view.inline_choices))
            if isinstance(picked, int):
                engine.choose_inline(view.inline_choices[picked].id)
                continue
        elif view.phase is PlaybackPhase.AWAITING_SCENE_CHOICE:
            render.render_choices([choice.text for choice in view.scene_choices])
            picked = _prompt_play_choice(len(view.scene_choices))
            if isinstance(picked, int):
                engine.choose_scene(view.scene_choices[picked].id)
                continue
        elif view.phase is PlaybackPhase.SCENE_ENDED:
            print("\n~ The End ~")
            picked = _prompt_play_choice(0)
        else:
            picked = _prompt_play_choice(0, proceed=True)
            if picked == "proceed":
                engine.proceed()
                continue

        if picked == "restart":
            engine.restart()
            shown_scene = None
            shown_step = None
        elif picked == "home":
            return "home"
        elif picked == "quit":
            return "quit"


def _present_line(engine: PlaybackEngine, settings: Dict[str, Any]) -> None:
    view = engine.current_view()
    render.render_speaker(view)
    if settings["text_display_mode"] == "typewriter" and engine.can_skip:
        render.reveal_text(view.text, delay_ms=settings["typing_delay_ms"])
    else:
        print(render.wrap_dialogue(view.text))
    engine.complete_reveal()


def _prompt_play_choice(choice_count: int, *, proceed: bool = False) -> int | str:
    hints = []
    if proceed:
        hints.append("[Enter] continue")
    if choice_count:
        hints.append(f"1-{choice_count} choose")
    hints.extend(["r restart", "h home", "q quit"])
    while True:
        raw = input(f"({', '.join(hints)}) > ").strip().lower()
        if raw == "" and proceed:
            return "proceed"
        if raw in ("r", "h", "q"):
            return {"r": "restart", "h": "home", "q": "quit"}[raw]
        if choice_count:
            try:
                index = int(raw) - 1
            except ValueError:
                index = -1
            if 0 <= index < choice_count:
                return index
        print("Invalid input.")


# ----------------------------------------------------------------------
# Editor
# ----------------------------------------------------------------------


def _run_admin(session: SessionController, settings: Dict[str, Any]) -> bool:
    """Ask for the access code, then run the editor. Returns False to quit the app."""
    session.request_admin()
    code = input("Access code (blank to go back): ").strip()
    if not code:
        return True
    if not session.submit_admin_code(code):
        print("Wrong access code.")
        return True
    return _run_editor_loop(session, settings)


def _run_editor_loop(session: SessionController, settings: Dict[str, Any]) -> bool:
    editor = session.editor
    assert editor is not None
    commands: List[Tuple[str, Callable[[StoryEditor, SessionController], None]]] = [
        ("List scenes", _cmd_list_scenes),
        ("Show scene", _cmd_show_scene),
        ("Add scene", _cmd_add_scene),
        ("Delete scene", _cmd_delete_scene),
        ("Add dialogue line", _cmd_add_line),
        ("Add inline choice", _cmd_add_inline_choice),
        ("Add scene choice", _cmd_add_scene_choice),
        ("Add character", _cmd_add_character),
        ("Set start scene", _cmd_set_start_scene),
        ("Validate story", _cmd_validate),
        ("Generate scene content", _cmd_generate),
    ]
    labels = [label for label, _ in commands] + ["Play test", "Back"]
    while True:
        render.render_menu(f"Editor: {editor.story.title}", labels)
        index = _prompt_index(len(labels))
        if index is None:
            continue
        if index == len(commands):
            outcome = _run_play_loop(session.play_test(), settings)
            if outcome == "quit":
                return False
            editor = session.open_editor()
            continue
        if index == len(commands) + 1:
            return True
        try:
            commands[index][1](editor, session)
        except StructuralEditError as exc:
            print(f"Rejected: {exc}")


def _cmd_list_scenes(editor: StoryEditor, session: SessionController) -> None:
    for scene_id, scene in editor.story.scenes.items():
        marker = "*" if scene_id == editor.story.start_scene_id else " "
        print(f"{marker} {scene_id}: {scene.title} ({len(scene.script)} lines, {len(scene.choices)} choices)")


def _cmd_show_scene(editor: StoryEditor, session: SessionController) -> None:
    scene = editor.story.scenes.get(input("Scene id: ").strip())
    if scene is None:
        print("No such scene.")
        return
    render.render_heading(f"{scene.id}: {scene.title}")
    print(f"Background: {scene.background_url}")
    for character in scene.characters:
        print(f"  character {character.id} {character.name} @ {character.position}")
    for line in scene.script:
        jump = f" -> {line.next_dialogue_id}" if line.next_dialogue_id else ""
        print(f"  {line.id} [{line.speaker}]: {line.text}{jump}")
        for choice in line.choices or []:
            print(f"      ? {choice.id} '{choice.text}' -> {choice.next_dialogue_id}")
    for choice in scene.choices:
        print(f"  exit {choice.id} '{choice.text}' -> {choice.next_scene_id}")


def _cmd_add_scene(editor: StoryEditor, session: SessionController) -> None:
    title = input("Scene title: ").strip() or "New scene"
    scene = editor.add_scene(title)
    print(f"Created scene {scene.id}.")


def _cmd_delete_scene(editor: StoryEditor, session: SessionController) -> None:
    scene_id = input("Scene id: ").strip()
    if input(f"Delete scene '{scene_id}'? (y/N) ").strip().lower() == "y":
        editor.delete_scene(scene_id)
        print("Deleted.")


def _cmd_add_line(editor: StoryEditor, session: SessionController) -> None:
    scene_id = input("Scene id: ").strip()
    speaker = input("Speaker: ").strip()
    text = input("Text: ").strip()
    after = input("Insert after line id (blank = end): ").strip() or None
    line = editor.add_line(scene_id, speaker, text, after_line_id=after)
    print(f"Added line {line.id}.")


def _cmd_add_inline_choice(editor: StoryEditor, session: SessionController) -> None:
    scene_id = input("Scene id: ").strip()
    line_id = input("Line id: ").strip()
    text = input("Choice text: ").strip()
    target = input("Jump to line id: ").strip()
    choice = editor.add_inline_choice(scene_id, line_id, text, target)
    print(f"Added inline choice {choice.id}.")


def _cmd_add_scene_choice(editor: StoryEditor, session: SessionController) -> None:
    scene_id = input("Scene id: ").strip()
    text = input("Choice text: ").strip() or "Next..."
    target = input("Target scene id (blank = start scene): ").strip() or None
    choice = editor.add_scene_choice(scene_id, text, target)
    print(f"Added choice {choice.id}.")


def _cmd_add_character(editor: StoryEditor, session: SessionController) -> None:
    scene_id = input("Scene id: ").strip()
    name = input("Name: ").strip() or "New character"
    image_url = input("Image URL (blank = placeholder): ").strip()
    position = input("Position (left/center/right): ").strip() or "center"
    if image_url:
        character = editor.add_character(scene_id, name, image_url=image_url, position=position)
    else:
        character = editor.add_character(scene_id, name, position=position)
    print(f"Added character {character.id}.")


def _cmd_set_start_scene(editor: StoryEditor, session: SessionController) -> None:
    editor.set_start_scene(input("Scene id: ").strip())
    print("Start scene updated.")


def _cmd_validate(editor: StoryEditor, session: SessionController) -> None:
    render.render_findings(editor.validate())


def _cmd_generate(editor: StoryEditor, session: SessionController) -> None:
    service = session.generation_service
    if service is None:
        print("Content generation is not configured.")
        return
    scene_id = input("Scene id: ").strip()
    scene = editor.story.scenes.get(scene_id)
    if scene is None:
        print("No such scene.")
        return
    directive = input("Describe what should happen in this scene: ").strip()
    if not directive:
        return
    print("Generating...")
    try:
        patch = asyncio.run(service.generate(directive, scene))
    except GenerationInProgressError as exc:
        print(str(exc))
        return
    if patch is None:
        print("Could not generate content. Check the API key.")
        return
    if editor.apply_patch(scene_id, patch):
        print("Scene updated.")


def _prompt_index(count: int) -> int | None:
    raw = input("Select an option: ").strip()
    try:
        index = int(raw) - 1
    except ValueError:
        print("Please enter a number.")
        return None
    if 0 <= index < count:
        return index
    print(f"Please enter a value between 1 and {count}.")
    return None

