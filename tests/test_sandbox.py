"""End-to-end runs of learner scripts inside the sandbox."""

import asyncio

import pytest

import os
from types import SimpleNamespace

from script import ScriptEntry, ScriptExecutor
from script.bridges import FetchResponse
from script.sandbox import build_restricted_globals, guarded_getattr


@pytest.fixture
def logs():
    return []


@pytest.fixture
def game(make_game, maze_data, logs):
    return make_game(maze_data(items=[{"id": "gem", "position": {"x": 3, "y": 1}, "type": "Treasure"}]),
                     on_log=lambda message, kind: logs.append((kind, message)))


async def wait_for_prompt(game):
    for _ in range(200):
        if game.is_waiting_for_input:
            return
        await asyncio.sleep(0)
    raise AssertionError("script never asked for input")


class TestOutcomes:
    @pytest.mark.asyncio
    async def test_win_from_listener(self, game):
        source = (
            "def arrived(pos):\n"
            "    if pos.x == 3:\n"
            "        game.win('made it')\n"
            "robot.on('move', arrived)\n"
            "while True:\n"
            "    await robot.move_forward()\n"
        )
        outcome = await ScriptExecutor(game).run(source)
        assert outcome.kind == "won"
        assert outcome.message == "made it"
        assert game.get_robot("Robot 1").position.as_tuple() == (3, 1)

    @pytest.mark.asyncio
    async def test_finishing_without_win_is_incomplete(self, game):
        outcome = await ScriptExecutor(game).run("await robot.move_forward()\n")
        assert outcome.kind == "incomplete"

    @pytest.mark.asyncio
    async def test_explicit_fail(self, game, logs):
        outcome = await ScriptExecutor(game).run("game.fail('gave up')\n")
        assert outcome.kind == "failed"
        assert ("robot", "FAIL: gave up") in logs

    @pytest.mark.asyncio
    async def test_runtime_error_is_reported(self, game, logs):
        outcome = await ScriptExecutor(game).run(
            "await robot.move_forward()\nraise ValueError('boom')\n")
        assert outcome.kind == "error"
        assert outcome.message == "boom"
        assert ("robot", "Runtime Error: boom") in logs

    @pytest.mark.asyncio
    async def test_unknown_robot(self, game):
        outcome = await ScriptExecutor(game).run("game.get_robot('Nope')\n")
        assert outcome.kind == "error"
        assert "Robot not found: Nope" in outcome.message

    @pytest.mark.asyncio
    async def test_imports_are_unavailable(self, game):
        outcome = await ScriptExecutor(game).run("import os\nos.listdir('.')\n")
        assert outcome.kind == "error"

    @pytest.mark.asyncio
    async def test_compile_error(self, game, logs):
        outcome = await ScriptExecutor(game).run("robot._sim.move_forward()\n")
        assert outcome.kind == "error"
        assert any(message.startswith("Compilation Error") for _, message in logs)

    @pytest.mark.asyncio
    async def test_main_is_called(self, game):
        source = (
            "async def main():\n"
            "    await robot.move_forward()\n"
            "    game.win('main ran')\n"
        )
        outcome = await ScriptExecutor(game).run(source)
        assert outcome.message == "main ran"

    @pytest.mark.asyncio
    async def test_pickup_listener_and_items(self, game):
        source = (
            "robot.on('pickup', lambda item: game.win('got ' + item.id))\n"
            "while robot.can_move_forward():\n"
            "    await robot.move_forward()\n"
            "    found = await robot.pickup()\n"
            "    if found:\n"
            "        break\n"
        )
        outcome = await ScriptExecutor(game).run(source)
        assert outcome.message == "got gem"


class TestConsole:
    @pytest.mark.asyncio
    async def test_console_and_print(self, game, logs):
        source = (
            "console.log('hello', 3)\n"
            "console.error('careful')\n"
            "print('printed', [1, 2])\n"
        )
        await ScriptExecutor(game).run(source)
        assert ("user", "LOG: hello 3") in logs
        assert ("user", "ERR: careful") in logs
        assert ("user", "LOG: printed [1, 2]") in logs

    @pytest.mark.asyncio
    async def test_script_classes_are_writable(self, game, logs):
        source = (
            "class Counter:\n"
            "    def __init__(self):\n"
            "        self.n = 0\n"
            "c = Counter()\n"
            "c.n = c.n + 2\n"
            "console.log(c.n)\n"
        )
        outcome = await ScriptExecutor(game).run(source)
        assert outcome.kind == "incomplete"
        assert ("user", "LOG: 2") in logs


class TestReadline:
    @pytest.mark.asyncio
    async def test_question_int_retries(self, game, logs):
        run = asyncio.ensure_future(ScriptExecutor(game).run(
            "n = readline.question_int('How many?')\nconsole.log(n * 2)\n"))

        await wait_for_prompt(game)
        assert game.input_prompt == "How many?"
        game.resolve_input("lots")
        await wait_for_prompt(game)
        game.resolve_input(" 21 ")
        outcome = await run

        assert outcome.kind == "incomplete"
        assert ("user", "ERR: Please enter a valid integer.") in logs
        assert ("user", "LOG: 42") in logs

    @pytest.mark.asyncio
    async def test_input_provider(self, make_game, logs):
        async def provider(prompt):
            return "open sesame"

        game = make_game(input_provider=provider, on_log=lambda m, k: logs.append((k, m)))
        outcome = await ScriptExecutor(game).run(
            "answer = readline.question('Password?')\n"
            "if answer == 'open sesame':\n"
            "    game.win('unlocked')\n")
        assert outcome.kind == "won"


class TestFetch:
    @pytest.mark.asyncio
    async def test_injected_fetch(self, game, logs):
        requested = []

        async def fake_fetch(url, **kwargs):
            requested.append(url)
            return FetchResponse(url, 200, {}, b'{"secret": "abc"}')

        source = (
            "resp = await fetch('https://example.test/secret')\n"
            "data = await resp.json()\n"
            "console.log(resp.ok, data['secret'])\n"
        )
        await ScriptExecutor(game, fetch=fake_fetch).run(source)
        assert requested == ["https://example.test/secret"]
        assert ("user", "LOG: true abc") in logs


class TestGlobalModule:
    @pytest.mark.asyncio
    async def test_exports_and_setup(self, game):
        setup = (
            "SECRET = 'treasure'\n"
            "def check(value):\n"
            "    return value == SECRET\n"
            "game.get_item('gem').password = SECRET\n"
        )
        main = (
            "item = game.get_item('gem')\n"
            "if exports.check(item.password):\n"
            "    game.win('exports work')\n"
        )
        outcome = await ScriptExecutor(game).run(main, global_module=setup)
        assert outcome.message == "exports work"

    @pytest.mark.asyncio
    async def test_failing_global_module_stops_run(self, game):
        outcome = await ScriptExecutor(game).run("game.win('never')\n",
                                                 global_module="raise RuntimeError('setup broke')\n")
        assert outcome.kind == "error"
        assert outcome.message == "setup broke"


class TestMultipleRobots:
    @pytest.fixture
    def game(self, make_game, maze_data):
        return make_game(maze_data(robots=[
            {"name": "A", "position": {"x": 1, "y": 1}, "direction": "East"},
            {"name": "B", "position": {"x": 1, "y": 3}, "direction": "East"},
        ]))

    @pytest.mark.asyncio
    async def test_each_entry_drives_its_robot(self, game):
        walk = "await robot.execute_path(['FORWARD', 'FORWARD'])\n"
        outcome = await ScriptExecutor(game).run([ScriptEntry(walk, robot="A"),
                                                  ScriptEntry(walk + walk, robot="B")])
        assert outcome.kind == "incomplete"
        assert game.get_robot("A").position.as_tuple() == (3, 1)
        assert game.get_robot("B").position.as_tuple() == (5, 3)

    @pytest.mark.asyncio
    async def test_error_in_one_script_does_not_stop_another(self, game):
        entries = [
            ScriptEntry("raise ValueError('A crashed')\n", robot="A"),
            ScriptEntry("await robot.move_forward()\nawait robot.move_forward()\n", robot="B"),
        ]
        outcome = await ScriptExecutor(game).run(entries)
        assert outcome.kind == "error"
        assert game.get_robot("B").position.as_tuple() == (3, 3)

    @pytest.mark.asyncio
    async def test_dynamic_robot(self, game):
        source = (
            "helper = game.create_robot(3, 2, name='Helper', direction='East')\n"
            "await helper.move_forward()\n"
            "if helper.position.x == 4:\n"
            "    game.win('helper moved')\n"
        )
        outcome = await ScriptExecutor(game).run(source)
        assert outcome.message == "helper moved"


class TestReset:
    @pytest.mark.asyncio
    async def test_reset_mid_run_leaves_new_run_alive(self, make_game):
        game = make_game(time_scale=1.0, base_interval=0.01)
        run = asyncio.ensure_future(ScriptExecutor(game).run(
            "while True:\n    await robot.turn_left()\n"))
        await asyncio.sleep(0.05)
        generation = game.generation

        game.reset()
        outcome = await run

        assert outcome.kind == "incomplete"
        assert game.generation == generation + 1
        assert game.is_running()
        assert game.outcome is None
        robot = game.get_robot("Robot 1")
        assert await robot.turn_right() == "South"


class TestIsolation:
    @pytest.mark.asyncio
    async def test_helper_namespaces(self, game, logs):
        await ScriptExecutor(game).run(
            "console.log(math.sqrt(16), json.dumps([1]), random.randint(3, 3))\n")
        assert ("user", "LOG: 4.0 [1] 3") in logs

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reach", [
        "json.codecs.sys.modules['os'].getcwd()",
        "json.codecs.builtins.open('/etc/hostname').read()",
        "random.__class__",
        "math.__loader__",
        "robot._sim",
        "robot._queue.close()",
        "game._game.env",
        "console._game",
        "readline._game.input_provider",
        "game.get_item('gem')._env.world",
        "(await robot.scan()).entity._env",
        "(x for x in []).gi_frame.f_globals",
    ])
    async def test_host_is_unreachable(self, game, logs, reach):
        outcome = await ScriptExecutor(game).run(f"value = {reach}\ngame.win('escaped')\n")
        assert outcome.kind == "error"
        assert ("robot", "WIN: escaped") not in logs

    def test_helper_namespaces_hold_no_modules(self, game):
        builtins = build_restricted_globals(ScriptExecutor(game).console)["__builtins__"]
        for name in ("math", "random", "json"):
            assert isinstance(builtins[name], SimpleNamespace)
            for attr in vars(builtins[name]).values():
                assert not isinstance(attr, type(os))

    def test_getattr_guard_refuses_modules(self, game):
        with pytest.raises(AttributeError):
            guarded_getattr(SimpleNamespace(os=os), "os")
        with pytest.raises(AttributeError):
            guarded_getattr(game.get_item("gem"), "_env")
        assert guarded_getattr(game.get_item("gem"), "type") == "Treasure"
