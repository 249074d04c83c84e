import asyncio
import logging

import pytest

from deferred_ai import ai, create_list, is_, list_, pending_generations, write
from deferred_ai.configs import Configs
from deferred_ai.errors import MalformedResultError, UnresolvedPlaceholderError
from deferred_ai.promise import DeferredGeneration, get_raw


class TestResolution:
    @pytest.mark.asyncio()
    async def test_resolves_at_most_once(self, backend):
        """
        Inputs:
            one root generation awaited concurrently and repeatedly.
        Expectation:
            Exactly one backend call; every await sees the same value.
        """
        backend.result = {"result": "done"}
        gen = ai("Do the thing")

        values = await asyncio.gather(gen, gen, gen.resolve(), gen.then())
        again = await gen

        assert values == [{"result": "done"}] * 4
        assert again == {"result": "done"}
        assert backend.calls == ["generate_object"]
        assert gen.is_resolved

    @pytest.mark.asyncio()
    async def test_schema_follows_properties_read_before_await(self, backend):
        backend.result = {"summary": "Short", "isUrgent": True}
        gen = ai("Triage this ticket")
        summary = gen.summary
        is_urgent = gen.isUrgent
        gen.summary  # duplicate reads are merged

        assert await summary == "Short"
        assert await is_urgent is True
        request = backend.requests[0]
        assert request.output_schema == {
            "summary": "The summary",
            "isUrgent": "Whether isUrgent (true/false)",
        }

    @pytest.mark.asyncio()
    async def test_reads_in_the_same_turn_as_await_are_batched(self, backend):
        """
        Inputs:
            ``then`` is called before a property is read, in the same turn.
        Expectation:
            The resolution is only scheduled, so the later read is still part of
            the schema.
        """
        backend.result = {"title": "T"}
        gen = ai("Name the post")
        future = gen.then()
        gen.title
        await future
        assert backend.requests[0].output_schema == {"title": "The title"}

    @pytest.mark.asyncio()
    async def test_read_after_resolution_started_is_logged(self, backend, caplog):
        backend.result = {"title": "T"}
        gen = ai("Name the post")
        future = gen.then()
        await asyncio.sleep(0)

        with caplog.at_level(logging.DEBUG, logger="deferred_ai.promise.deferred"):
            gen.subtitle
        await future
        assert "may not be part of the schema" in caplog.text

    @pytest.mark.asyncio()
    async def test_request_carries_options(self, backend):
        gen = ai("Hi", model="opus", temperature=0.3, max_tokens=50, system="Be brief")
        await gen
        request = backend.requests[0]
        assert request.model == "opus"
        assert request.temperature == 0.3
        assert request.max_tokens == 50
        assert request.system == "Be brief"

    @pytest.mark.asyncio()
    async def test_default_model_comes_from_configs(self, backend):
        Configs.default_model = "haiku"
        await ai("Hi")
        assert backend.requests[0].model == "haiku"

    @pytest.mark.asyncio()
    async def test_base_schema_is_requested_verbatim(self, backend):
        schema = {"name": "Recipe name", "servings": "How many (integer)"}
        await ai("A soup recipe", schema=schema)
        assert backend.requests[0].output_schema == schema

    @pytest.mark.asyncio()
    async def test_backend_option_overrides_configs(self, backend):
        other = type(backend)(result={"result": "other"})
        assert await ai("Hi", backend=other) == {"result": "other"}
        assert backend.calls == []
        assert other.calls == ["generate_object"]

    @pytest.mark.asyncio()
    async def test_missing_backend_raises(self):
        with pytest.raises(AssertionError, match="backend must be provided"):
            await ai("Hi")

    @pytest.mark.asyncio()
    async def test_backend_error_propagates_without_retry(self, backend):
        backend.error = RuntimeError("rate limited")
        gen = ai("Hi")
        with pytest.raises(RuntimeError, match="rate limited"):
            await gen
        with pytest.raises(RuntimeError, match="rate limited"):
            await gen.resolve()
        assert backend.calls == ["generate_object"]
        assert not gen.is_resolved


class TestUnwrapping:
    @pytest.mark.asyncio()
    @pytest.mark.parametrize(
        "answer, expected", [("true", True), (True, True), ("false", False)]
    )
    async def test_boolean(self, backend, answer, expected):
        backend.result = {"answer": answer}
        assert await is_("Is the sky blue?") is expected

    @pytest.mark.asyncio()
    async def test_list(self, backend):
        backend.result = {"items": ["a", "b"]}
        assert await list_("Two letters") == ["a", "b"]
        assert backend.requests[0].output_schema == {"items": ["List items"]}

    @pytest.mark.asyncio()
    async def test_text(self, backend):
        backend.result = {"text": "Hello there"}
        assert await write("Greet me") == "Hello there"

    @pytest.mark.asyncio()
    async def test_malformed_result_degrades(self, backend):
        backend.result = {"values": ["a"]}
        assert await list_("Letters") == {"values": ["a"]}

    @pytest.mark.asyncio()
    async def test_strict_unwrap_raises(self, backend):
        backend.result = {"values": ["a"]}
        Configs.strict_unwrap = True
        with pytest.raises(MalformedResultError):
            await list_("Letters")

    @pytest.mark.asyncio()
    async def test_text_with_accessed_fields_keeps_object(self, backend):
        backend.result = {"title": "T", "body": "B"}
        post = write("Write a post")
        title = post.title
        body = post.body
        assert await post == {"title": "T", "body": "B"}
        assert (await title, await body) == ("T", "B")


class TestDerivedNavigation:
    @pytest.mark.asyncio()
    async def test_nested_path(self, backend):
        backend.result = {"a": {"b": 5}}
        gen = ai("Nested")
        b = gen.a.b
        assert await b == 5
        assert get_raw(b).path == ("a", "b")
        assert backend.requests[0].output_schema == {"a": {"b": "The b"}}

    @pytest.mark.asyncio()
    async def test_missing_path_resolves_to_none(self, backend):
        backend.result = {"a": {"b": 5}}
        gen = ai("Nested")
        missing = gen.a.c
        deeper = gen.x.y.z
        assert await missing is None
        assert await deeper is None

    @pytest.mark.asyncio()
    async def test_item_access_by_index(self, backend):
        backend.result = {"steps": [{"title": "Boil"}, {"title": "Serve"}]}
        gen = ai("Recipe")
        second = gen.steps[1].title
        assert await second == "Serve"

    @pytest.mark.asyncio()
    async def test_derived_objects_never_call_the_model(self, backend):
        backend.result = {"title": "T", "tags": ["x"]}
        gen = ai("Post")
        title, tags = gen.title, gen.tags
        await asyncio.gather(title, tags, gen)
        await title
        assert backend.calls == ["generate_object"]

    def test_accessed_props_are_recorded_on_the_root(self):
        gen = ai("Post")
        gen.title
        author = gen.author
        author.name
        author.books
        assert gen.accessed_props == {"title", "author"}
        assert author.accessed_props == {"name", "books"}
        assert get_raw(author.name).root is get_raw(gen)
        assert get_raw(gen).access_tree == {
            "title": {},
            "author": {"name": {}, "books": {}},
        }


class TestDependencies:
    @pytest.mark.asyncio()
    async def test_dependency_is_substituted(self, backend):
        def respond(request):
            if request.prompt == "Pick a noun":
                return {"text": "World"}
            return {"result": "ok"}

        backend.result = respond
        noun = write("Pick a noun")
        greeting = ai(["Hello ", ""], noun)

        await greeting
        assert [r.prompt for r in backend.requests] == ["Pick a noun", "Hello World"]

    @pytest.mark.asyncio()
    async def test_dependencies_resolve_in_order_and_once(self, backend):
        def respond(request):
            return {"text": request.prompt.upper()}

        backend.result = respond
        first = write("a")
        second = write("b")
        combined = ai(["", " and ", " then ", ""], first, second, first)

        await combined
        prompts = [r.prompt for r in backend.requests]
        assert prompts == ["a", "b", "A and B then A"]

    @pytest.mark.asyncio()
    async def test_derived_dependency_uses_navigated_value(self, backend):
        def respond(request):
            if request.prompt == "Profile":
                return {"name": "Ada", "age": 36}
            return {"result": "ok"}

        backend.result = respond
        profile = ai("Profile")
        await ai(["Write to ", ""], profile.name)
        assert backend.requests[-1].prompt == "Write to Ada"

    @pytest.mark.asyncio()
    async def test_add_dependency_with_explicit_key(self, backend):
        def respond(request):
            return {"text": "Paris"} if request.prompt == "Capital" else {"result": request.prompt}

        backend.result = respond
        capital = write("Capital")
        trip = ai("Plan a trip to ${city}")
        dependency = trip.add_dependency(capital, key="city")

        assert dependency.key == "city"
        assert dependency.generation is get_raw(capital)
        assert await trip == {"result": "Plan a trip to Paris"}

    def test_add_dependency_default_keys(self):
        gen = ai("x")
        other = ai("y")
        assert gen.add_dependency(other).key == "dep_0"
        assert gen.add_dependency(other, path=("user", "name")).key == "user.name"
        assert gen.add_dependency(other).key == "dep_2"
        assert get_raw(gen).dependencies[0].generation is get_raw(other)

    @pytest.mark.asyncio()
    async def test_unmatched_placeholder_is_left_in_prompt(self, backend):
        await ai("Keep ${dep_9} as is")
        assert backend.requests[0].prompt == "Keep ${dep_9} as is"

    @pytest.mark.asyncio()
    async def test_strict_placeholders_raise(self, backend):
        with Configs.context(strict_placeholders=True):
            with pytest.raises(UnresolvedPlaceholderError) as excinfo:
                await ai("Keep ${dep_9} as is")
        assert excinfo.value.placeholders == ["${dep_9}"]
        assert backend.calls == []


class TestThenCatchFinally:
    @pytest.mark.asyncio()
    async def test_then_applies_callback(self, backend):
        backend.result = {"result": "ok"}
        assert await ai("Hi").then(lambda value: value["result"].upper()) == "OK"

    @pytest.mark.asyncio()
    async def test_then_accepts_async_callback(self, backend):
        async def on_fulfilled(value):
            await asyncio.sleep(0)
            return len(value)

        backend.result = {"items": ["a", "b", "c"]}
        assert await list_("Three").then(on_fulfilled) == 3

    @pytest.mark.asyncio()
    async def test_catch_handles_rejection(self, backend):
        backend.error = ValueError("bad")
        result = await ai("Hi").catch(lambda exc: f"recovered from {exc}")
        assert result == "recovered from bad"

    @pytest.mark.asyncio()
    async def test_each_then_returns_its_own_future(self, backend):
        """
        Inputs:
            two ``then`` calls on a failing generation, one with ``on_rejected``.
        Expectation:
            Each call gets a separate future over one backend call; only the
            future without a handler raises.
        """
        backend.error = ValueError("bad")
        gen = ai("Hi")
        handled = gen.then(None, lambda exc: "handled")
        unhandled = gen.then()

        assert handled is not unhandled
        assert await handled == "handled"
        with pytest.raises(ValueError, match="bad"):
            await unhandled
        assert backend.calls == ["generate_object"]

    @pytest.mark.asyncio()
    async def test_finally_runs_on_success_and_failure(self, backend):
        seen = []
        assert await ai("Hi").finally_(lambda: seen.append("ok")) == {"result": "ok"}

        backend.error = ValueError("bad")
        with pytest.raises(ValueError, match="bad"):
            await ai("Hi").finally_(lambda: seen.append("failed"))
        assert seen == ["ok", "failed"]


class TestIteration:
    @pytest.mark.asyncio()
    async def test_for_each_over_list(self, backend):
        backend.result = {"items": ["a", "b"]}
        seen = []
        await list_("Letters").for_each(lambda item, index: seen.append((item, index)))
        assert seen == [("a", 0), ("b", 1)]

    @pytest.mark.asyncio()
    async def test_for_each_on_scalar_calls_once(self, backend):
        backend.result = {"text": "whole"}
        seen = []
        await write("Text").for_each(lambda item, index: seen.append((item, index)))
        assert seen == [("whole", 0)]

    @pytest.mark.asyncio()
    async def test_async_for(self, backend):
        backend.result = {"items": ["x", "y"]}
        assert [item async for item in create_list("Two")] == ["x", "y"]

    @pytest.mark.asyncio()
    async def test_async_for_on_scalar_yields_value(self, backend):
        backend.result = {"answer": "true"}
        assert [item async for item in is_("Yes?")] == [True]


class TestPendingSet:
    @pytest.mark.asyncio()
    async def test_registered_until_resolved(self, backend):
        gen = ai("Hi")
        raw = get_raw(gen)
        assert raw in pending_generations()
        await gen
        assert raw not in pending_generations()

    def test_direct_construction_is_registered(self):
        gen = DeferredGeneration("Hi")
        assert gen in pending_generations()
        assert not gen.is_resolved
        assert repr(gen) == "<DeferredGeneration object pending>"
