"""Shared fixtures: C++ snippets described through the in-memory store."""

import pytest

from snippet_store import Snippet, SnippetStore, build_record, container
from soaproxy.config import SoaProxyConfig
from soaproxy.context import TransformContext

POINT_SOURCE = """#include <vector>

struct P {
public:
    int x;
private:
    float y;
public:
    P(int x_, float y_): x(x_), y(y_) {}
};

std::vector<P> points;
"""

NAMESPACED_SOURCE = """#include <vector>

namespace ns {
    struct Q {
        int a;
        int b;
    };
}

std::vector<ns::Q> qs;
"""

TEMPLATE_SOURCE = """#include <vector>

template <typename T, int N>
class B;

template <typename T, int N>
class B
{
public:
    B(const B& other) : v(other.v), w(other.w) { ; }
    T v;
protected:
    const float x = 3;
public:
    T w;
};

template <typename T>
class B<T, 2>
{
public:
    T v;
};

std::vector<B<double, 3>> bs;
"""


def point_store(path="points.cpp"):
    snippet = Snippet(POINT_SOURCE, str(path))
    record = build_record(
        snippet,
        "struct P",
        "P",
        fields=[("int", "x"), ("float", "y")],
        constructors=[{"text": "P(int x_, float y_): x(x_), y(y_) {}"}],
    )
    variable = container(snippet, "std::vector<P> points", "P", "points")
    return SnippetStore(snippet, [record], [variable])


def namespaced_store():
    snippet = Snippet(NAMESPACED_SOURCE, "shapes.hpp")
    record = build_record(
        snippet,
        "struct Q",
        "Q",
        fields=[("int", "a"), ("int", "b")],
        namespaces=[snippet.namespace("ns")],
    )
    variable = container(snippet, "std::vector<ns::Q> qs", "Q", "qs")
    return SnippetStore(snippet, [record], [variable])


def template_store():
    snippet = Snippet(TEMPLATE_SOURCE, "classB.hpp")
    params = ["typename T", "int N"]
    forward = build_record(snippet, "template <typename T, int N>\nclass B;", "B",
                           template_params=params)
    primary = build_record(
        snippet,
        "template <typename T, int N>\nclass B\n{",
        "B",
        fields=[("T", "v"), ("const float", "x", "const float x = 3"), ("T", "w")],
        template_params=params,
        constructors=[
            {"text": "B(const B& other) : v(other.v), w(other.w) { ; }", "is_copy": True}
        ],
    )
    specialization = build_record(
        snippet,
        "template <typename T>\nclass B<T, 2>",
        "B",
        fields=[("T", "v")],
        template_params=["typename T"],
        specialization_args=["T", "2"],
    )
    variable = container(snippet, "std::vector<B<double, 3>> bs", "B", "bs")
    return SnippetStore(snippet, [forward, primary, specialization], [variable])


@pytest.fixture
def points():
    return point_store()


@pytest.fixture
def namespaced():
    return namespaced_store()


@pytest.fixture
def templated():
    return template_store()


@pytest.fixture
def config():
    return SoaProxyConfig()


@pytest.fixture
def make_context(config):
    def factory(store):
        return TransformContext(store=store, config=config)

    return factory
