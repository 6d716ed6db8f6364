"""Tests for effect dispatch and sound playback."""

from unittest.mock import MagicMock, patch

from numberbonds import sound
from numberbonds.config import SoundConfig
from numberbonds.effects import EffectsDispatcher, RecordingEffects, SafeEffects, SoundEffects


def test_safe_effects_forwards_events():
    inner = RecordingEffects()
    safe = SafeEffects(inner)
    safe.on_correct_match(1, 2, True)
    safe.on_badge_unlocked("explorer")
    assert inner.events == [("on_correct_match", (1, 2, True)),
                            ("on_badge_unlocked", ("explorer",))]


def test_safe_effects_swallows_failures():
    inner = MagicMock(spec=EffectsDispatcher)
    inner.on_level_up.side_effect = RuntimeError("boom")
    SafeEffects(inner).on_level_up()
    inner.on_level_up.assert_called_once()


def test_default_dispatcher_is_silent():
    SafeEffects().on_boss_mode_start()


def test_sound_effects_plays_configured_files(tmp_path):
    ok = tmp_path / "ok.wav"
    streak = tmp_path / "streak.wav"
    ok.write_bytes(b"")
    streak.write_bytes(b"")
    cfg = SoundConfig(player="aplay", correct=str(ok), streak=str(streak),
                      wrong=str(tmp_path / "missing.wav"))
    with patch("numberbonds.effects.sound.play_file") as play:
        fx = SoundEffects(cfg)
        fx.on_correct_match(0, 0, False)
        fx.on_correct_match(0, 0, True)
        fx.on_wrong_match()
        fx.on_level_up()
    assert [c.args for c in play.call_args_list] == [
        (str(ok), "aplay"),
        (str(streak), "aplay"),
    ]


def test_play_file_spawns_player_and_caps_concurrency():
    procs = [MagicMock() for _ in range(6)]
    for p in procs:
        p.poll.return_value = None
    with patch.object(sound, "sfx_enabled", True), \
            patch.object(sound, "global_mute", False), \
            patch("numberbonds.sound.subprocess.Popen", side_effect=procs) as popen:
        for _ in range(6):
            sound.play_file("/tmp/x.wav", "aplay")
        assert popen.call_count == 6
        assert popen.call_args.args[0] == ["aplay", "/tmp/x.wav"]
        procs[0].kill.assert_called_once()
        procs[1].kill.assert_called_once()
        assert len(sound._processes) == 4
        sound.stop_all()
        assert sound._processes == []
        procs[5].kill.assert_called_once()


def test_play_file_respects_mute():
    with patch.object(sound, "global_mute", True), \
            patch("numberbonds.sound.subprocess.Popen") as popen:
        sound.play_file("/tmp/x.wav", "aplay")
    popen.assert_not_called()


def test_play_file_without_player_is_a_noop():
    with patch("numberbonds.sound.default_player", return_value=None), \
            patch("numberbonds.sound.subprocess.Popen") as popen:
        sound.play_file("/tmp/x.wav")
    popen.assert_not_called()
