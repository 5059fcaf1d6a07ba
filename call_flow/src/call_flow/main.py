#!/usr/bin/env python3
"""
Call-flow tracer for Java/Kotlin (Python)
-----------------------------------------
Scans Java/Kotlin sources to collect:
- classes, their methods and parameters
- for each method, the calls, `if` headers and loops in its body
and unfolds the calls reachable from one entry method into a flow graph
(start/end, method, decision and loop nodes) ready for rendering.

USAGE EXAMPLES
--------------
# 1) List entry methods of the built-in Android sample:
call-flow

# 2) Trace the sample from MainActivity.onCreate and print the graph as JSON:
call-flow --entry MainActivity.onCreate --json

# 3) Run against a directory of .java/.kt files (recursive):
call-flow /path/to/android/app --entry MainActivity.onCreate

ENVIRONMENT
-----------
CALL_FLOW_BACKEND=lines|tree-sitter, CALL_FLOW_LINK_END=1, CALL_FLOW_LOG_LEVEL=INFO
(command-line flags win).
"""

import argparse
import sys
from typing import Optional, Sequence

from call_flow.src.call_flow.analysis import ProjectAnalysis, SourceFile
from call_flow.src.call_flow.config import Settings, configure_logging, parse_backend, parse_log_level
from call_flow.src.call_flow.errors import CallFlowError
from call_flow.src.call_flow.inputs.directory_scanning import analyze_directory
from call_flow.src.call_flow.outputs.output import print_classes, print_listing, print_summary, to_json

# --- Demo sources --------------------------------------------------------------

SAMPLE_JAVA = r"""
package com.acme.demo;

import android.os.Bundle;

public class MainActivity extends AppCompatActivity implements View.OnClickListener {
    private final UserRepository repo = new UserRepository();

    @Override
    protected void onCreate(Bundle savedInstanceState) {
        super.onCreate(savedInstanceState);
        setContentView(R.layout.activity_main);
        loadUsers();
        if (savedInstanceState != null) {
            restoreState(savedInstanceState);
        }
    }

    private void loadUsers() {
        // Fetch from the repository, then render each user
        for (String name : repo.findAll()) {
            render(name);
        }
    }

    private void restoreState(Bundle state) {
        Log.d("MainActivity", "restoring");
        loadUsers();
    }

    @Override
    public void onClick(View v) {
        finish();
    }
}
"""

SAMPLE_KOTLIN = r"""
package com.acme.demo

class UserRepository : BaseRepository(), Closeable {
    fun findAll(): List<String> {
        return store.toList()
    }

    private fun render(name: String) = Formatter.format(name)
}
"""

SAMPLE_SOURCES = (
    SourceFile(path="MainActivity.java", text=SAMPLE_JAVA),
    SourceFile(path="UserRepository.kt", text=SAMPLE_KOTLIN),
)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="call-flow",
        description="Trace the call flow of Java/Kotlin sources from an entry method.",
    )
    parser.add_argument("path", nargs="?", help="directory of .java/.kt sources (default: built-in sample)")
    parser.add_argument("--entry", help="fully-qualified entry method, e.g. MainActivity.onCreate")
    parser.add_argument("--list", action="store_true", help="print the extracted classes and methods")
    parser.add_argument("--json", action="store_true", help="print JSON instead of a text summary")
    parser.add_argument("--backend", help="extractor backend: lines or tree-sitter")
    parser.add_argument("--link-end", action="store_true", default=None,
                        help="connect the last traced node to END")
    parser.add_argument("--log-level", help="logging level (default: WARNING)")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)

    try:
        settings = Settings.from_env()
        backend = parse_backend(args.backend) if args.backend else settings.backend
        log_level = parse_log_level(args.log_level) if args.log_level else settings.log_level
        link_end = settings.link_end if args.link_end is None else args.link_end
        configure_logging(log_level)

        # If a directory is given, analyse the sources in it; else use the sample
        if args.path:
            analysis = analyze_directory(args.path, backend)
        else:
            analysis = ProjectAnalysis.from_sources(SAMPLE_SOURCES, backend)

        if args.list:
            print_classes(analysis.classes)

        if not args.entry:
            listing = analysis.entry_methods()
            if args.json:
                print(to_json(listing))
            else:
                print_listing(listing)
            return 0

        if args.json:
            print(to_json(analysis.call_flow_response(args.entry, link_end=link_end)))
        else:
            print_summary(analysis.trace(args.entry, link_end=link_end))
        return 0
    except NotADirectoryError as e:
        print(f"error: not a directory: {e}", file=sys.stderr)
        return 2
    except CallFlowError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
