import pytest

from actdispatch.actions import default_registry
from actdispatch.classifier import (
    ClassifierChain,
    buffer_prompt_type,
    by_category,
    category_type,
    package_prompt_type,
    symbol_prompt_type,
)
from actdispatch.session import Context, ViewCache


class TestClassifierChain:
    def test_first_match_wins(self):
        chain = ClassifierChain([lambda ctx: None, lambda ctx: "file", lambda ctx: "buffer"])
        assert chain.classify(Context()) == "file"

    def test_falls_back_to_general(self):
        chain = ClassifierChain([lambda ctx: None, lambda ctx: ""])
        assert chain.classify(Context()) == "general"

    def test_empty_chain_is_general(self):
        assert ClassifierChain().classify(Context(prompt_active=True)) == "general"

    def test_register_first_takes_priority(self):
        chain = ClassifierChain([lambda ctx: "file"])
        chain.register(lambda ctx: "url", first=True)
        assert chain.classify(Context()) == "url"
        assert len(chain.classifiers) == 2

    def test_classification_is_repeatable(self):
        chain = ClassifierChain([category_type, symbol_prompt_type])
        ctx = Context(prompt_active=True, command="describe-function")
        assert chain.classify(ctx) == chain.classify(ctx) == "symbol"

    def test_cache_miss_then_category_reaches_general_bindings(self):
        """A view unknown to the cache falls through to the category classifier."""
        chain = ClassifierChain([ViewCache().classify, by_category("file")])
        ctx = Context(category="file", view_id="scratch")

        session_type = chain.classify(ctx)
        assert session_type == "file"

        registry = default_registry()
        keymap = registry.lookup_keymap(session_type)
        assert keymap.parent is registry.general
        assert keymap.lookup("C-g").name == "cancel"

    def test_cache_hit_wins_over_category(self):
        cache = ViewCache()
        cache.remember("view-1", "symbol", "main")
        chain = ClassifierChain([cache.classify, by_category("file")])
        assert chain.classify(Context(category="file", view_id="view-1")) == "symbol"


class TestBuiltinClassifiers:
    def test_category_needs_an_open_prompt(self):
        assert category_type(Context(category="file")) is None
        assert category_type(Context(prompt_active=True, category="file")) == "file"
        assert category_type(Context(prompt_active=True)) is None

    def test_prompt_command_classifiers(self):
        assert symbol_prompt_type(Context(prompt_active=True, command="describe-variable")) == "symbol"
        assert package_prompt_type(Context(prompt_active=True, command="package-install")) == "package"
        assert buffer_prompt_type(Context(prompt_active=True, command="switch-to-buffer")) == "buffer"

    def test_prompt_command_classifiers_ignore_closed_prompts(self):
        assert symbol_prompt_type(Context(command="describe-variable")) is None
        assert buffer_prompt_type(Context(prompt_active=True, command="find-file")) is None

    def test_by_category_is_named(self):
        classify = by_category("url")
        assert "url" in classify.__qualname__
        assert classify(Context(category="url")) == "url"
        assert classify(Context(category="file")) is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
