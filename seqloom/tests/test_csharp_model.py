"""Tests for the tree-sitter C# source model and end-to-end diagrams.

Real C# snippets go through CSharpParser and CSharpSemanticModel, then the
diagram generator, so these exercise the full front end.
"""

import pytest

from seqloom.core.diagrams import CallerIndex, generate_diagrams
from seqloom.core.source_model import NodeKind, TypeRef, load_sources


# ── Fixtures ──────────────────────────────────────────────────────────────


SHOP = """
namespace Demo
{
    public class Bar
    {
        public int Run(int x) { return x; }
    }

    public class Foo
    {
        private Bar bar = new Bar();

        public void M()
        {
            if (bar != null)
            {
                Helper();
            }
            bar.Run(1);
        }

        private void Helper() { }
    }
}
"""


def _find(root, kind, text=None):
    for node in root.walk():
        if node.kind == kind and (text is None or node.text == text):
            return node
    raise AssertionError(f"No {kind} {text or ''} in tree")


def _method(program, name):
    for unit in program.units:
        for node in unit.root.walk():
            if node.kind == NodeKind.METHOD and node.declared_name == name:
                return node
    raise AssertionError(f"No method {name}")


# ── Tests: Parsing ────────────────────────────────────────────────────────


class TestCSharpParser:
    """Tests for tree-sitter -> SyntaxNode conversion."""

    def test_kinds_and_fields(self):
        program = load_sources({"Shop.cs": SHOP}, module="Shop")
        unit = program.units[0]

        assert unit.root.kind == NodeKind.COMPILATION_UNIT
        assert unit.module == "Shop"
        assert not unit.has_errors

        invocation = _find(unit.root, NodeKind.INVOCATION, "bar.Run(1)")
        callee = invocation.child("function")
        assert callee.kind == NodeKind.MEMBER_ACCESS
        assert callee.child("expression").text == "bar"
        assert callee.child("name").text == "Run"

    def test_control_flow_kinds(self):
        source = """
class C {
    void M(int[] xs) {
        for (int i = 0; i < 1; i++) { }
        foreach (var x in xs) { }
        while (true) { }
        do { } while (false);
        if (true) { }
    }
}
"""
        root = load_sources({"C.cs": source}).units[0].root
        kinds = {n.kind for n in root.walk()}

        assert {NodeKind.FOR, NodeKind.FOREACH, NodeKind.WHILE, NodeKind.DO, NodeKind.IF} <= kinds

    def test_line_numbers_are_one_based(self):
        program = load_sources({"Shop.cs": SHOP})
        assert _method(program, "M").line == 13

    def test_parse_errors_are_flagged_not_raised(self):
        program = load_sources({"Broken.cs": "class C { void M( { }"})
        assert program.units[0].has_errors


# ── Tests: Semantic model ─────────────────────────────────────────────────


class TestCSharpSemanticModel:
    """Tests for declaration-based binding."""

    def test_declared_symbol(self):
        program = load_sources({"Shop.cs": SHOP}, module="Shop")
        symbol = program.model.declared_symbol(_method(program, "Run"))

        assert symbol.module == "Shop"
        assert symbol.type_name == "Demo.Bar"
        assert symbol.name == "Run"
        assert symbol.arity == 1
        assert not symbol.is_constructor

    def test_field_receiver_type(self):
        program = load_sources({"Shop.cs": SHOP})
        receiver = _find(_method(program, "M"), NodeKind.INVOCATION, "bar.Run(1)").child("function").child("expression")

        assert program.model.static_type_of(receiver) == TypeRef("Demo.Bar")

    def test_method_name_has_no_type(self):
        program = load_sources({"Shop.cs": SHOP})
        callee = _find(_method(program, "M"), NodeKind.INVOCATION, "Helper()").child("function")

        assert program.model.static_type_of(callee) is None
        assert program.model.inferred_member_name(callee) == "Helper"

    def test_invocation_return_type(self):
        program = load_sources({"Shop.cs": SHOP})
        model = program.model
        method = _method(program, "M")

        assert model.static_type_of(_find(method, NodeKind.INVOCATION, "bar.Run(1)")) == TypeRef("int")
        assert model.static_type_of(_find(method, NodeKind.INVOCATION, "Helper()")) is None

    def test_var_takes_initializer_type(self):
        source = """
namespace Demo {
    class Repo { public void Save() { } }
    class Svc {
        void M() {
            var repo = new Repo();
            repo.Save();
        }
    }
}
"""
        program = load_sources({"Svc.cs": source})
        receiver = _find(_method(program, "M"), NodeKind.INVOCATION, "repo.Save()").child("function").child("expression")

        assert program.model.static_type_of(receiver) == TypeRef("Demo.Repo")

    def test_array_and_type_parameter_are_not_named(self):
        source = """
class Box<T> {
    T item;
    int[] items;
    void M() { item.ToString(); items.Clone(); }
}
"""
        program = load_sources({"Box.cs": source})
        model = program.model
        method = _method(program, "M")

        item = _find(method, NodeKind.IDENTIFIER, "item")
        items = _find(method, NodeKind.IDENTIFIER, "items")
        assert model.static_type_of(item).is_named is False
        assert model.static_type_of(items).is_named is False

    def test_inherited_member_binding(self):
        source = """
namespace Demo {
    class Repo { public void Save() { } }
    class Base { protected Repo repo; }
    class Svc : Base {
        void M() { repo.Save(); }
    }
}
"""
        program = load_sources({"Svc.cs": source})
        call = _find(_method(program, "M"), NodeKind.INVOCATION, "repo.Save()")

        targets = program.model.referenced_methods(call)
        assert [t.type_name for t in targets] == ["Demo.Repo"]

    def test_partial_classes_merge(self):
        a = "namespace Demo { partial class Svc { void M() { Helper(); } } }"
        b = "namespace Demo { partial class Svc { void Helper() { } } }"
        program = load_sources({"A.cs": a, "B.cs": b})
        call = _find(program.units[0].root, NodeKind.INVOCATION, "Helper()")

        assert [t.name for t in program.model.referenced_methods(call)] == ["Helper"]

    def test_overloads_bind_by_arity(self):
        source = """
class C {
    void Go() { }
    void Go(int x) { }
    void M() { Go(1); }
}
"""
        program = load_sources({"C.cs": source})
        call = _find(_method(program, "M"), NodeKind.INVOCATION, "Go(1)")

        assert [t.arity for t in program.model.referenced_methods(call)] == [1]


# ── Tests: Caller index and diagrams ──────────────────────────────────────


class TestEndToEnd:
    """C# source -> caller index -> PlantUML diagrams."""

    def test_shop_diagram(self):
        program = load_sources({"Shop.cs": SHOP}, module="Shop")

        diagrams = generate_diagrams(program)

        assert diagrams == {
            "Shop_Foo_M": [
                "@startuml",
                "title Shop_Foo_M",
                "autoactivate on",
                "hide footbox",
                "group if",
                "  Foo -> Foo: Helper",
                "  Foo --> Foo: void",
                "end",
                "Foo -> Demo.Bar: Run",
                "Demo.Bar --> Foo: int",
                "@enduml",
            ]
        }

    def test_entry_points(self):
        program = load_sources({"Shop.cs": SHOP}, module="Shop")
        index = CallerIndex.build(program)

        assert [s.name for s in index.entry_points()] == ["M"]

    def test_method_group_reference_counts_as_caller(self):
        source = """
using System.Threading.Tasks;
class Worker {
    void Start() { Task.Run(DoWork); }
    void DoWork() { Log(); }
    void Log() { }
}
"""
        program = load_sources({"Worker.cs": source}, module="W")
        index = CallerIndex.build(program)

        assert [s.name for s in index.entry_points()] == ["Start"]
        assert "W_Worker_DoWork" not in generate_diagrams(program)

    def test_constructors_are_not_drawn(self):
        source = """
class Svc {
    public Svc() { Init(); }
    void Init() { }
}
"""
        program = load_sources({"Svc.cs": source}, module="Asm")
        assert generate_diagrams(program) == {}

    def test_loop_without_resolved_calls_collapses(self):
        source = """
class Svc {
    public void M(int[] xs) {
        foreach (var x in xs) { xs.Clone(); }
        Step();
    }
    void Step() { }
}
"""
        diagrams = generate_diagrams(load_sources({"Svc.cs": source}, module="Asm"))

        assert diagrams["Asm_Svc_M"][4:] == ["Svc -> Svc: Step", "Svc --> Svc: void", "@enduml"]

    @pytest.mark.parametrize("receiver", ["Factory().Step()", "base.Step()"])
    def test_complex_receivers_are_not_edges(self, receiver):
        source = f"""
class Root {{ public void Step() {{ }} }}
class Svc : Root {{
    public void M() {{ {receiver}; }}
    public new void Step() {{ }}
    Svc Factory() {{ return this; }}
}}
"""
        diagrams = generate_diagrams(load_sources({"Svc.cs": source}, module="Asm"))
        lines = diagrams.get("Asm_Svc_M", [])

        assert "Svc -> Svc: Step" not in lines

    def test_this_receiver_is_same_type_call(self):
        source = """
class Svc {
    public void M() { this.Step(); }
    void Step() { }
}
"""
        diagrams = generate_diagrams(load_sources({"Svc.cs": source}, module="Asm"))

        assert diagrams["Asm_Svc_M"][4:] == ["Svc -> Svc: Step", "Svc --> Svc: void", "@enduml"]

    def test_file_scoped_namespace_qualifies_types(self):
        source = """
namespace Demo;

class Repo { public int Save() { return 1; } }

class Foo {
    Repo r;
    void M() { r.Save(); }
}
"""
        program = load_sources({"Foo.cs": source}, module="Asm")

        assert program.model.declared_symbol(_method(program, "Save")).type_name == "Demo.Repo"
        assert generate_diagrams(program)["Asm_Foo_M"][4:] == [
            "Foo -> Demo.Repo: Save",
            "Demo.Repo --> Foo: int",
            "@enduml",
        ]

    def test_members_of_external_types_return_unknown(self):
        source = """
class Svc {
    ILogger logger;
    void M(string s) {
        logger.Log("x");
        var n = s.Length;
    }
}
"""
        lines = generate_diagrams(load_sources({"Svc.cs": source}, module="Asm"))["Asm_Svc_M"]

        assert lines[lines.index("Svc -> ILogger: Log") + 1] == "ILogger --> Svc: ?"
        assert lines[lines.index("Svc -> string: Length") + 1] == "string --> Svc: ?"
