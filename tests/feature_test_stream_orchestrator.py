"""Feature tests for the stream orchestrator.

This test suite drives whole requests through the orchestrator with a
transport client that needs no network, and checks what the subscribers
observe: the typed characters, status updates and the single terminal
event of each request.
"""

import sys
import asyncio
import logging
import unittest
from pathlib import Path

# Add the parent directory to the path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from tests.test_decorators import feature_test
from tests.stream_test_utils import (
    FailingChunkSource,
    FakeQueryClient,
    FixedRandom,
    QueueChunkSource,
    RecordingSleep,
    RecordingSubscriber,
    data_line,
    event_stream,
    wait_until,
)

from quillstream.config.settings import AppSettings
from quillstream.config.transport_settings import TransportSettings
from quillstream.core.stream.cancellation import CancellationToken
from quillstream.core.stream.event_publisher import EventPublisher
from quillstream.core.stream.orchestrator import StreamOrchestrator
from quillstream.core.stream.stream_session import SessionState, StreamSession
from quillstream.core.transport.chunk_source import IterableChunkSource
from quillstream.core.transport.errors import TransportError
from quillstream.core.transport.query_request import QueryRequest

logger = logging.getLogger("feature_test_stream_orchestrator")


class OrchestratorTestCase(unittest.IsolatedAsyncioTestCase):
    """Base test case wiring an orchestrator to a recording subscriber."""

    async def asyncSetUp(self):
        AppSettings.reset_instance()
        self.settings = AppSettings(transport=TransportSettings(
            endpoint="http://query.test/stream",
            tenant_id="tenant-1",
            project_id="project-1",
            api_key="secret",
            provider="groq",
            model="llama-3.1-8b-instant",
        ))
        self.subscriber = RecordingSubscriber()
        self.sleep = RecordingSleep()

    async def asyncTearDown(self):
        AppSettings.reset_instance()

    def make_orchestrator(self, client) -> StreamOrchestrator:
        orchestrator = StreamOrchestrator(self.settings, client=client, session_id="session-1",
                                          sleep=self.sleep, rng=FixedRandom(0.5))
        orchestrator.subscribe(self.subscriber)
        return orchestrator


class TestStreamScenarios(OrchestratorTestCase):
    """End-to-end behaviour of single requests."""

    @feature_test
    async def test_content_then_sentinel(self):
        client = FakeQueryClient.from_body(event_stream({"chunk": "Hi"}), event_stream({"chunk": "!"}, "[DONE]"))
        orchestrator = self.make_orchestrator(client)

        outcome = await orchestrator.run(orchestrator.create_request("hello"))

        self.assertTrue(outcome.is_completed)
        self.assertEqual(self.subscriber.calls,
                         [("character", "H"), ("character", "i"), ("character", "!"), ("complete", None)])

    @feature_test
    async def test_error_after_partial_content(self):
        client = FakeQueryClient.from_body(event_stream({"chunk": "partial"}, {"error": "boom"}))
        orchestrator = self.make_orchestrator(client)

        outcome = await orchestrator.run(orchestrator.create_request("hello"))

        self.assertTrue(outcome.is_errored)
        self.assertEqual(outcome.reason, "boom")
        self.assertEqual(self.subscriber.count("error"), 1)
        self.assertEqual(self.subscriber.count("complete"), 0)
        self.assertEqual(self.subscriber.kinds()[-1], "error", "No character may follow the error")
        self.assertTrue("partial".startswith(self.subscriber.text),
                        "Typed characters should be a prefix of the fragment")
        self.assertIn(("error", "boom"), self.subscriber.calls)

    @feature_test
    async def test_cancel_before_any_data(self):
        source = QueueChunkSource()
        orchestrator = self.make_orchestrator(FakeQueryClient(source))
        token = CancellationToken()

        task = asyncio.ensure_future(orchestrator.run(orchestrator.create_request("hello"), token))
        await wait_until(lambda: source.reads > 0)
        token.cancel()
        outcome = await asyncio.wait_for(task, timeout=1.0)

        source.feed(event_stream({"chunk": "late"}, "[DONE]"))
        await asyncio.sleep(0.01)

        self.assertTrue(outcome.is_cancelled)
        self.assertEqual(self.subscriber.calls, [], "A cancelled request should produce no output at all")

    @feature_test
    async def test_malformed_line_is_skipped(self):
        body = data_line({"chunk": "ab"}) + b"data: {oops\n" + data_line({"chunk": "cd"}) + b"data: [DONE]\n"
        orchestrator = self.make_orchestrator(FakeQueryClient.from_body(body))

        outcome = await orchestrator.run(orchestrator.create_request("hello"))

        self.assertTrue(outcome.is_completed)
        self.assertEqual(self.subscriber.text, "abcd")
        self.assertEqual(self.subscriber.count("error"), 0)

    @feature_test
    async def test_cancel_after_some_characters(self):
        token = CancellationToken()

        class CancellingSubscriber(RecordingSubscriber):
            def on_character(self, char):
                super().on_character(char)
                if self.count("character") == 3:
                    token.cancel("enough")

        subscriber = CancellingSubscriber()
        orchestrator = self.make_orchestrator(FakeQueryClient.from_body(event_stream({"chunk": "abcdefgh"}, "[DONE]")))
        orchestrator.subscribe(subscriber)

        outcome = await orchestrator.run(orchestrator.create_request("hello"), token)
        await asyncio.sleep(0.01)

        self.assertTrue(outcome.is_cancelled)
        self.assertEqual(outcome.reason, "enough")
        self.assertEqual(subscriber.text, "abc")
        self.assertEqual(subscriber.count("complete") + subscriber.count("error"), 0)

    @feature_test
    async def test_status_is_forwarded_before_typing(self):
        body = event_stream({"type": "status", "message": "Searching..."}, {"chunk": "ok"},
                            {"type": "status", "message": "Done"}, {"type": "complete"})
        orchestrator = self.make_orchestrator(FakeQueryClient.from_body(body))

        await orchestrator.run(orchestrator.create_request("hello"))

        self.assertEqual(self.subscriber.calls[0], ("status", "Searching..."))
        self.assertIn(("status", "Done"), self.subscriber.calls)
        self.assertEqual(self.subscriber.text, "ok")
        self.assertEqual(self.subscriber.calls[-1], ("complete", None))

    @feature_test
    async def test_end_of_body_completes(self):
        orchestrator = self.make_orchestrator(FakeQueryClient.from_body(event_stream({"chunk": "abc"})))

        outcome = await orchestrator.run(orchestrator.create_request("hello"))

        self.assertTrue(outcome.is_completed)
        self.assertEqual(self.subscriber.text, "abc")
        self.assertEqual(self.subscriber.count("complete"), 1)

    @feature_test
    async def test_completion_waits_for_typing(self):
        body = event_stream({"chunk": "Hello, world.\nBye"}, "[DONE]")
        orchestrator = self.make_orchestrator(FakeQueryClient.from_body(body))

        await orchestrator.run(orchestrator.create_request("hello"))

        self.assertEqual(self.subscriber.text, "Hello, world.\nBye")
        self.assertEqual(self.subscriber.kinds().index("complete"), len(self.subscriber.calls) - 1)
        self.assertEqual(len(self.sleep.delays), len("Hello, world.\nBye"))

    @feature_test
    async def test_transport_error_is_reported_once(self):
        client = FakeQueryClient(error=TransportError("HTTP error! status: 500", status=500))
        orchestrator = self.make_orchestrator(client)

        outcome = await orchestrator.run(orchestrator.create_request("hello"))

        self.assertTrue(outcome.is_errored)
        self.assertEqual(self.subscriber.calls, [("error", "HTTP error! status: 500")])

    @feature_test
    async def test_broken_body_keeps_typed_characters(self):
        source = FailingChunkSource([event_stream({"chunk": "xy"})], TransportError("Stream interrupted"))
        orchestrator = self.make_orchestrator(FakeQueryClient(source))

        outcome = await orchestrator.run(orchestrator.create_request("hello"))

        self.assertTrue(outcome.is_errored)
        self.assertEqual(self.subscriber.calls[-1], ("error", "Stream interrupted"))
        self.assertEqual(self.subscriber.count("error"), 1)

    @feature_test
    async def test_transport_error_after_cancel_is_silent(self):
        token = CancellationToken()
        token.cancel()
        client = FakeQueryClient(error=TransportError("connection reset"))
        orchestrator = self.make_orchestrator(client)

        outcome = await orchestrator.run(orchestrator.create_request("hello"), token)

        self.assertTrue(outcome.is_cancelled)
        self.assertEqual(self.subscriber.calls, [])

    @feature_test
    async def test_unexpected_error_is_reported_and_raised(self):
        orchestrator = self.make_orchestrator(FakeQueryClient(error=KeyError("bad")))

        with self.assertRaises(KeyError):
            await orchestrator.run(orchestrator.create_request("hello"))

        self.assertEqual(self.subscriber.count("error"), 1)
        self.assertIsNone(orchestrator.active_session)

    @feature_test
    async def test_task_cancellation_cancels_token(self):
        source = QueueChunkSource()
        orchestrator = self.make_orchestrator(FakeQueryClient(source))
        token = CancellationToken()

        task = asyncio.ensure_future(orchestrator.run(orchestrator.create_request("hello"), token))
        await wait_until(lambda: source.reads > 0)
        task.cancel()

        with self.assertRaises(asyncio.CancelledError):
            await task

        self.assertTrue(token.is_cancelled)
        self.assertEqual(self.subscriber.calls, [])
        self.assertTrue(source.closed, "The response should be closed")


class TestStreamOrchestrator(OrchestratorTestCase):
    """Tests for the per-conversation behaviour."""

    @feature_test
    async def test_create_request_uses_settings(self):
        orchestrator = self.make_orchestrator(FakeQueryClient())

        request = orchestrator.create_request("What is new?")

        self.assertEqual(request.to_payload(), {
            "query": "What is new?",
            "tenantId": "tenant-1",
            "apiKey": "secret",
            "projectId": "project-1",
            "provider": "groq",
            "model": "llama-3.1-8b-instant",
            "sessionId": "session-1",
        })

    @feature_test
    async def test_create_request_overrides(self):
        orchestrator = self.make_orchestrator(FakeQueryClient())

        request = orchestrator.create_request("q", model="other-model", api_key=None)

        self.assertEqual(request.model, "other-model")
        self.assertNotIn("apiKey", request.to_payload(), "Unset fields should be omitted")

    @feature_test
    async def test_new_request_cancels_previous(self):
        first_source = QueueChunkSource()
        second_body = IterableChunkSource([event_stream({"chunk": "new"}, "[DONE]")])
        orchestrator = self.make_orchestrator(FakeQueryClient(first_source, second_body))

        first = asyncio.ensure_future(orchestrator.run(orchestrator.create_request("first")))
        await wait_until(lambda: first_source.reads > 0)
        first_token = orchestrator.active_session.token
        self.assertTrue(orchestrator.is_streaming)

        second_outcome = await orchestrator.run(orchestrator.create_request("second"))
        first_outcome = await asyncio.wait_for(first, timeout=1.0)

        self.assertTrue(first_token.is_cancelled)
        self.assertTrue(first_outcome.is_cancelled)
        self.assertTrue(second_outcome.is_completed)
        self.assertEqual(self.subscriber.calls,
                         [("character", "n"), ("character", "e"), ("character", "w"), ("complete", None)])
        self.assertFalse(orchestrator.is_streaming)

    @feature_test
    async def test_cancel_current_request(self):
        source = QueueChunkSource()
        orchestrator = self.make_orchestrator(FakeQueryClient(source))

        self.assertFalse(orchestrator.cancel_current_request(), "Nothing to cancel while idle")

        task = asyncio.ensure_future(orchestrator.run(orchestrator.create_request("hello")))
        await wait_until(lambda: source.reads > 0)

        self.assertTrue(orchestrator.cancel_current_request())
        self.assertFalse(orchestrator.cancel_current_request(), "Cancelling twice changes nothing")

        outcome = await asyncio.wait_for(task, timeout=1.0)
        self.assertTrue(outcome.is_cancelled)
        self.assertIsNone(orchestrator.active_session)

    @feature_test
    async def test_unsubscribe(self):
        orchestrator = self.make_orchestrator(FakeQueryClient.from_body(event_stream({"chunk": "a"}, "[DONE]")))
        orchestrator.unsubscribe(self.subscriber)

        await orchestrator.run(orchestrator.create_request("hello"))

        self.assertEqual(self.subscriber.calls, [])

    @feature_test
    async def test_close(self):
        client = FakeQueryClient()
        orchestrator = self.make_orchestrator(client)

        await orchestrator.close()

        self.assertTrue(client.closed)

    @feature_test
    async def test_session_runs_once(self):
        client = FakeQueryClient.from_body(b"data: [DONE]\n")
        session = StreamSession(QueryRequest("q"), client, EventPublisher(), request_id="r1",
                                sleep=self.sleep)
        self.assertEqual(session.state, SessionState.IDLE)

        outcome = await session.run()
        self.assertEqual(session.state, SessionState.COMPLETED)
        self.assertIs(session.outcome, outcome)
        self.assertFalse(session.cancel(), "A finished session cannot be cancelled")

        with self.assertRaises(RuntimeError):
            await session.run()


def run_stream_orchestrator_tests() -> bool:
    """Run all stream orchestrator feature tests."""
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()
    suite.addTests(loader.loadTestsFromTestCase(TestStreamScenarios))
    suite.addTests(loader.loadTestsFromTestCase(TestStreamOrchestrator))
    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)
    return result.wasSuccessful()


if __name__ == "__main__":
    success = run_stream_orchestrator_tests()
    sys.exit(0 if success else 1)
