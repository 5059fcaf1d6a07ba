from call_flow.src.call_flow.extractor import (
    SourceExtractor,
    extract,
    mask_line,
    parse_parameters,
    split_top_level,
)
from call_flow.src.call_flow.models.ast_models import (
    Branch,
    Call,
    Dialect,
    Loop,
    LoopKind,
    Parameter,
)


def _methods(classes):
    return {m.full_name: m for cls in classes for m in cls.methods}


def test_java_inheritance_clause():
    source = """
public class MainActivity extends AppCompatActivity implements View.OnClickListener, Runnable {
}
"""
    [cls] = extract(source, Dialect.JAVA)

    assert cls.name == "MainActivity"
    assert cls.superclass == "AppCompatActivity"
    assert cls.interfaces == ("View.OnClickListener", "Runnable")
    assert cls.methods == ()


def test_kotlin_inheritance_first_name_is_superclass():
    source = """
class MainActivity : AppCompatActivity(), View.OnClickListener {
}
"""
    [cls] = extract(source, Dialect.KOTLIN)

    assert cls.superclass == "AppCompatActivity"
    assert cls.interfaces == ("View.OnClickListener",)


def test_java_method_declarations():
    source = """class Calculator {
    public int add(int a, int b) {
        return a + b;
    }
    void reset() {
    }
    private static Map<String, Integer> index(List<String> words, final boolean strict) {
        return null;
    }
}
"""
    [cls] = extract(source, Dialect.JAVA, "Calculator.java")
    add, reset, index = cls.methods

    assert add.full_name == "Calculator.add"
    assert add.visibility == "public"
    assert add.return_type == "int"
    assert add.parameters == (Parameter("a", "int"), Parameter("b", "int"))
    assert add.line == 2
    assert add.statements == ()

    assert reset.visibility == "package"
    assert reset.return_type == "void"

    assert index.visibility == "private"
    assert index.return_type == "Map<String, Integer>"
    assert index.parameters == (Parameter("words", "List<String>"), Parameter("strict", "boolean"))
    assert cls.file_path == "Calculator.java"


def test_java_constructor_has_no_return_type():
    source = """class UserService {
    public UserService(UserRepository repo) {
        init(repo);
    }
}
"""
    [cls] = extract(source, Dialect.JAVA)
    [ctor] = cls.methods

    assert ctor.name == "UserService"
    assert ctor.return_type is None
    assert ctor.parameters == (Parameter("repo", "UserRepository"),)
    assert ctor.statements == (Call("init", 3),)


def test_kotlin_fun_declarations():
    source = """class Repo {
    suspend fun load(id: Int, force: Boolean = false): User? {
        return api.fetch(id)
    }
    fun reset() {
    }
}
"""
    [cls] = extract(source, Dialect.KOTLIN)
    load, reset = cls.methods

    assert load.parameters == (Parameter("id", "Int"), Parameter("force", "Boolean"))
    assert load.return_type == "User?"
    assert load.visibility == "package"
    assert load.statements == (Call("fetch", 3, receiver="api"),)
    assert reset.return_type == "Unit"


def test_body_statements_in_order():
    source = """class Worker {
    public void run() {
        prepare();
        if (isReady(config)) {
            execute(task);
        }
        while (queue.hasNext()) {
            process(queue.next());
        }
        Log.d(TAG, "done");
        Toast.makeText(this, "x", 1);
        finish();
    }
}
"""
    [cls] = extract(source, Dialect.JAVA)
    [run] = cls.methods

    assert run.statements == (
        Call("prepare", 3),
        Call("isReady", 4),
        Branch("isReady(config)", 4),
        Call("execute", 5),
        Call("hasNext", 7, receiver="queue"),
        Loop(LoopKind.WHILE, "queue.hasNext()", 7),
        Call("process", 8),
        Call("next", 8, receiver="queue"),
    )


def test_do_while_and_single_line_for():
    source = """class Poller {
    void poll() {
        do {
            fetch();
        } while (pending > 0);
        for (int i = 0; i < 3; i++) retry(i);
    }
}
"""
    [cls] = extract(source, Dialect.JAVA)

    assert cls.methods[0].statements == (
        Call("fetch", 4),
        Loop(LoopKind.DO_WHILE, "pending > 0", 5),
        Call("retry", 6),
        Loop(LoopKind.FOR, "int i = 0; i < 3; i++", 6),
    )


def test_branch_and_loop_bodies_stay_empty():
    source = """class Gate {
    void check() {
        if (open) {
            enter();
        }
    }
}
"""
    [cls] = extract(source, Dialect.JAVA)
    branch = cls.methods[0].statements[0]

    assert isinstance(branch, Branch)
    assert branch.true_body == ()
    assert branch.false_body == ()


def test_comments_and_string_literals_are_ignored():
    source = """class Notes {
    void save() {
        // persist(draft);
        /* archive(old);
           purge(all); */
        String s = "call(me) { nope";
        store(s); // flush();
    }
    void after() {
    }
}
"""
    [cls] = extract(source, Dialect.JAVA)
    save, after = cls.methods

    assert save.statements == (Call("store", 7),)
    assert after.name == "after"


def test_branch_condition_keeps_string_text():
    source = """class Auth {
    void check() {
        if (role.equals("admin")) {
        }
    }
}
"""
    [cls] = extract(source, Dialect.JAVA)

    assert Branch('role.equals("admin")', 3) in cls.methods[0].statements


def test_classes_in_declaration_order_without_leaking_statements():
    source = """class A {
    void first() {
        second();
    }
}
class B {
    void second() {
        third();
    }
}
"""
    classes = extract(source, Dialect.JAVA)
    methods = _methods(classes)

    assert [c.name for c in classes] == ["A", "B"]
    assert methods["A.first"].statements == (Call("second", 3),)
    assert methods["B.second"].statements == (Call("third", 8),)


def test_nested_class_resumes_outer_class():
    source = """public class Outer {
    void before() {
        a();
    }
    static class Inner {
        void inside() {
            b();
        }
    }
    void after() {
        c();
    }
}
"""
    outer, inner = extract(source, Dialect.JAVA)

    assert [m.name for m in outer.methods] == ["before", "after"]
    assert [m.name for m in inner.methods] == ["inside"]
    assert inner.methods[0].statements == (Call("b", 7),)


def test_allman_braces():
    source = """class Allman
{
    void run()
    {
        go();
    }
}
"""
    [cls] = extract(source, Dialect.JAVA)

    assert cls.methods[0].name == "run"
    assert cls.methods[0].statements == (Call("go", 5),)


def test_interface_methods_without_body():
    source = """public interface Shape {
    double area();
    default String label() { return describe(this); }
}
"""
    [cls] = extract(source, Dialect.JAVA)
    area, label = cls.methods

    assert area.statements == ()
    assert label.statements == (Call("describe", 3),)


def test_kotlin_expression_body_and_companion_object():
    source = """class Greeter(private val name: String) {
    fun greet() = format(name)
    companion object {
        fun create(): Greeter {
            return Greeter(load())
        }
    }
}
"""
    greeter, companion = extract(source, Dialect.KOTLIN)

    assert greeter.methods[0].full_name == "Greeter.greet"
    assert greeter.methods[0].statements == (Call("format", 2),)
    assert companion.name == "Companion"
    assert companion.methods[0].return_type == "Greeter"
    assert companion.methods[0].statements == (Call("Greeter", 5), Call("load", 5))


def test_package_is_recorded():
    source = """package com.acme.demo;

class Thing {
}
"""
    [cls] = extract(source, Dialect.JAVA)

    assert cls.package == "com.acme.demo"


def test_malformed_input_never_fails():
    assert extract("", Dialect.KOTLIN) == []
    assert extract("}}} random ((( text", Dialect.JAVA) == []


def test_unclosed_scopes_are_flushed_at_end_of_input():
    source = """class Broken {
    void x() {
        call();
"""
    [cls] = extract(source, Dialect.JAVA)

    assert cls.name == "Broken"
    assert cls.methods[0].statements == (Call("call", 3),)


def test_extractor_instance_is_reusable():
    extractor = SourceExtractor()
    source = "class A {\n    void run() {\n        go();\n    }\n}\n"

    assert extractor.extract(source, Dialect.JAVA) == extractor.extract(source, Dialect.JAVA)


def test_mask_line_blanks_literals_but_keeps_columns():
    code, masked, in_comment = mask_line('log("a{b}"); /* open', False)

    assert in_comment is True
    assert len(code) == len(masked)
    assert "{" not in masked
    assert code.startswith('log("a{b}");')


def test_parse_parameters_per_dialect():
    assert parse_parameters("Map<String, Integer> counts, @NonNull View v", Dialect.JAVA) == (
        Parameter("counts", "Map<String, Integer>"),
        Parameter("v", "View"),
    )
    assert parse_parameters("items: List<Pair<Int, String>>, limit: Int = 10", Dialect.KOTLIN) == (
        Parameter("items", "List<Pair<Int, String>>"),
        Parameter("limit", "Int"),
    )
    assert parse_parameters("   ", Dialect.JAVA) == ()


def test_split_top_level_respects_generics():
    assert split_top_level("Map<A, B>, C") == ["Map<A, B>", "C"]


def test_class_header_wrapped_onto_next_line():
    source = """public class MainActivity extends AppCompatActivity
        implements View.OnClickListener {
    @Override
    protected void onCreate(Bundle savedInstanceState) {
        loadUsers();
    }
}
"""
    [cls] = extract(source, Dialect.JAVA)

    assert cls.name == "MainActivity"
    assert cls.line == 1
    assert cls.superclass == "AppCompatActivity"
    assert cls.interfaces == ("View.OnClickListener",)
    assert [m.name for m in cls.methods] == ["onCreate"]
    assert cls.methods[0].statements == (Call("loadUsers", 5),)


def test_java_parameter_list_spanning_lines():
    source = """class Screen {
    public void bind(
            View view,
            int position) throws IOException {
        render(view);
    }
}
"""
    [cls] = extract(source, Dialect.JAVA)
    [bind] = cls.methods

    assert bind.line == 2
    assert bind.return_type == "void"
    assert bind.parameters == (Parameter("view", "View"), Parameter("position", "int"))
    assert bind.statements == (Call("render", 5),)


def test_kotlin_primary_constructor_spanning_lines():
    source = """class MainViewModel(
    private val repo: Repo
) : ViewModel() {
    fun load() {
        repo.fetch()
    }
}
"""
    [cls] = extract(source, Dialect.KOTLIN)

    assert cls.name == "MainViewModel"
    assert cls.superclass == "ViewModel"
    assert [m.name for m in cls.methods] == ["load"]
    assert cls.methods[0].statements == (Call("fetch", 5, receiver="repo"),)


def test_kotlin_default_argument_with_call():
    source = """class Loader {
    fun fetch(id: Int = nextId(), force: Boolean = false): User {
        return api.get(id)
    }
}
"""
    [cls] = extract(source, Dialect.KOTLIN)
    [fetch] = cls.methods

    assert fetch.parameters == (Parameter("id", "Int"), Parameter("force", "Boolean"))
    assert fetch.return_type == "User"
    assert fetch.statements == (Call("get", 3, receiver="api"),)


def test_kotlin_class_without_body_is_closed_by_next_declaration():
    source = """data class Point(val x: Int, val y: Int)

class Plotter {
    fun plot(p: Point) {
        draw(p)
    }
}
"""
    point, plotter = extract(source, Dialect.KOTLIN)

    assert point.name == "Point"
    assert point.methods == ()
    assert [m.name for m in plotter.methods] == ["plot"]


def test_kotlin_do_while_without_semicolon():
    source = """class Poller {
    fun poll() {
        do {
            step()
        } while (more())
    }
}
"""
    [cls] = extract(source, Dialect.KOTLIN)

    assert cls.methods[0].statements == (
        Call("step", 4),
        Call("more", 5),
        Loop(LoopKind.DO_WHILE, "more()", 5),
    )


def test_framework_call_variants_are_dropped():
    source = """class Screen {
    void show() {
        showToast(msg);
        logEvent(name);
        getStringExtra(key);
        finishAffinity();
        refresh();
    }
}
"""
    [cls] = extract(source, Dialect.JAVA)

    assert cls.methods[0].statements == (Call("refresh", 7),)
