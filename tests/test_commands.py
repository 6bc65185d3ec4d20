"""Tests for the command verbs."""

import asyncio
import unittest
from typing import Any
from unittest.mock import AsyncMock

from alexa_media_controller import commands, remote_client
from alexa_media_controller.credential_store import (
    COOKIE_KEY,
    CSRF_KEY,
    DEFAULT_DEVICE_KEY,
    MemoryCredentialStore,
)
from alexa_media_controller.errors import DeviceNotFound, RemoteError
from alexa_media_controller.session import Session


def create_raw_device(serial: str, name: str) -> dict[str, Any]:
    return {"serialNumber": serial, "accountName": name, "deviceFamily": "ECHO", "capabilities": ["AUDIO_PLAYER"]}


def create_session(raw_devices: list[dict[str, Any]], **store_data: Any) -> Session:
    mock_client = AsyncMock()
    mock_client.list_devices.return_value = raw_devices
    return Session(client=mock_client, store=MemoryCredentialStore(store_data))


class TestCredentials(unittest.TestCase):
    def test_save_credentials(self) -> None:
        store = MemoryCredentialStore()

        commands.save_credentials(store, "  session-id=abc ", "token")

        self.assertEqual(store.load(), {COOKIE_KEY: "session-id=abc", CSRF_KEY: "token"})

    def test_save_credentials_rejects_empty_cookie(self) -> None:
        with self.assertRaises(ValueError):
            commands.save_credentials(MemoryCredentialStore(), "   ")

    def test_logout_clears_store(self) -> None:
        store = MemoryCredentialStore({COOKIE_KEY: "abc", DEFAULT_DEVICE_KEY: "A1"})

        commands.logout(store)

        self.assertEqual(store.load(), {})


class TestDeviceCommands(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.session = create_session([create_raw_device("A1", "Kitchen Echo"), create_raw_device("B2", "Office Dot")])
        self.client = self.session.client

    async def test_set_default_stores_serial(self) -> None:
        device = await commands.set_default(self.session, "office")

        self.assertEqual(device.serial, "B2")
        self.assertEqual(self.session.store.get(DEFAULT_DEVICE_KEY), "B2")

    async def test_set_default_unknown_device(self) -> None:
        with self.assertRaises(DeviceNotFound):
            await commands.set_default(self.session, "garage")

        self.assertIsNone(self.session.store.get(DEFAULT_DEVICE_KEY))

    async def test_play_query_on_apple_music(self) -> None:
        await commands.play(self.session, "jazz", device_name="kitchen")

        self.client.send_command.assert_awaited_once_with("A1", remote_client.TEXT_COMMAND, "play jazz on Apple Music")

    async def test_play_query_on_spotify(self) -> None:
        await commands.play(self.session, "jazz", service="spotify", device_name="kitchen")

        self.client.send_command.assert_awaited_once_with("A1", remote_client.TEXT_COMMAND, "play jazz on Spotify")

    async def test_play_without_query_resumes(self) -> None:
        await commands.play(self.session, device_name="office")

        self.client.send_command.assert_awaited_once_with("B2", remote_client.RESUME, None)

    async def test_play_unknown_service(self) -> None:
        with self.assertRaises(ValueError):
            await commands.play(self.session, "jazz", service="tape", device_name="office")

        self.client.list_devices.assert_not_awaited()

    async def test_transport_commands(self) -> None:
        await commands.pause(self.session, "office")
        await commands.next_track(self.session, "office")
        await commands.previous_track(self.session, "office")

        sent = [call.args for call in self.client.send_command.await_args_list]
        self.assertEqual(
            sent,
            [
                ("B2", remote_client.PAUSE, None),
                ("B2", remote_client.NEXT, None),
                ("B2", remote_client.PREVIOUS, None),
            ],
        )

    async def test_set_volume(self) -> None:
        await commands.set_volume(self.session, 35, "office")

        self.client.send_command.assert_awaited_once_with("B2", remote_client.VOLUME, 35)

    async def test_set_volume_out_of_range(self) -> None:
        for level in (-1, 101):
            with self.assertRaises(ValueError):
                await commands.set_volume(self.session, level, "office")

        self.client.send_command.assert_not_awaited()

    async def test_mute(self) -> None:
        await commands.mute(self.session, "kitchen")

        self.client.send_command.assert_awaited_once_with("A1", remote_client.VOLUME, 0)

    async def test_speak_text_command_and_routine(self) -> None:
        await commands.speak(self.session, "hello", "kitchen")
        await commands.text_command(self.session, "what time is it", "kitchen")
        await commands.run_routine(self.session, "Good Night", "kitchen")

        sent = [call.args for call in self.client.send_command.await_args_list]
        self.assertEqual(
            sent,
            [
                ("A1", remote_client.SPEAK, "hello"),
                ("A1", remote_client.TEXT_COMMAND, "what time is it"),
                ("A1", remote_client.ROUTINE, "Good Night"),
            ],
        )

    async def test_send_failure_becomes_remote_error(self) -> None:
        self.client.send_command.side_effect = OSError("connection reset")

        with self.assertRaises(RemoteError) as ctx:
            await commands.pause(self.session, "office")

        self.assertIn("connection reset", str(ctx.exception))

    async def test_status(self) -> None:
        self.client.player_info.return_value = {
            "playerInfo": {
                "state": "PLAYING",
                "infoText": {"title": "So What", "subText1": "Miles Davis"},
                "volume": {"volume": 40},
            }
        }

        device, status = await commands.status(self.session, "office")

        self.assertEqual(device.serial, "B2")
        self.assertEqual(status.state, "PLAYING")
        self.assertEqual(status.title, "So What")
        self.assertEqual(status.artist, "Miles Davis")
        self.assertEqual(status.volume, 40)

    async def test_status_without_info(self) -> None:
        self.client.player_info.return_value = None

        _, status = await commands.status(self.session, "office")

        self.assertIsNone(status)

    async def test_status_with_nothing_loaded(self) -> None:
        self.client.player_info.return_value = {"playerInfo": None}

        device, status = await commands.status(self.session, "office")

        self.assertEqual(device.serial, "B2")
        self.assertIsNone(status)


class TestBroadcast(unittest.IsolatedAsyncioTestCase):
    async def test_every_device_receives_the_announcement(self) -> None:
        session = create_session([create_raw_device("A1", "Kitchen Echo"), create_raw_device("B2", "Office Dot")])

        results = await commands.broadcast(session, "Dinner is ready")

        self.assertEqual([result.device.serial for result in results], ["A1", "B2"])
        self.assertTrue(all(result.ok for result in results))
        session.client.send_command.assert_any_await("A1", remote_client.ANNOUNCEMENT, "Dinner is ready")
        session.client.send_command.assert_any_await("B2", remote_client.ANNOUNCEMENT, "Dinner is ready")

    async def test_partial_failure_does_not_stop_other_devices(self) -> None:
        session = create_session(
            [
                create_raw_device("A1", "Kitchen Echo"),
                create_raw_device("B2", "Office Dot"),
                create_raw_device("C3", "Bedroom"),
            ]
        )
        error = RemoteError("Failed: offline")
        finished: list[str] = []

        async def send_command(serial: str, command: str, payload: Any = None) -> None:
            await asyncio.sleep(0)
            if serial == "B2":
                raise error
            finished.append(serial)

        session.client.send_command.side_effect = send_command

        results = await commands.broadcast(session, "hello")

        self.assertEqual(sorted(finished), ["A1", "C3"])
        self.assertEqual([result.ok for result in results], [True, False, True])
        self.assertIs(results[1].error, error)

    async def test_sends_run_concurrently(self) -> None:
        session = create_session([create_raw_device("A1", "Kitchen Echo"), create_raw_device("B2", "Office Dot")])
        both_started = asyncio.Event()
        started: list[str] = []

        async def send_command(serial: str, command: str, payload: Any = None) -> None:
            started.append(serial)
            if len(started) == 2:  # noqa: PLR2004
                both_started.set()
            await asyncio.wait_for(both_started.wait(), timeout=1)

        session.client.send_command.side_effect = send_command

        results = await commands.broadcast(session, "hello")

        self.assertTrue(all(result.ok for result in results))

    async def test_no_devices(self) -> None:
        session = create_session([])

        self.assertEqual(await commands.broadcast(session, "hello"), [])
        session.client.send_command.assert_not_awaited()
