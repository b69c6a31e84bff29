"""
Built-in toolchain catalog.

Static command presets keyed by ecosystem name.  Values use the raw
configuration shapes (``None`` = disabled, ``str`` = shell command,
``list`` = composite) and are parsed into Toolchain models once at import.

Standard command names:

    clean, restore, build, build:release, test, test:coverage,
    check, check:fix, lint, format, format-check, bench, demo, doc,
    pack, publish
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Mapping

from polyrun.core.models.toolchain import Toolchain

STANDARD_COMMANDS: tuple[str, ...] = (
    "clean",
    "restore",
    "build",
    "build:release",
    "test",
    "test:coverage",
    "check",
    "check:fix",
    "lint",
    "format",
    "format-check",
    "bench",
    "demo",
    "doc",
    "pack",
    "publish",
)

_RAW: dict[str, dict[str, Any]] = {
    # ── Systems ─────────────────────────────────────────────────
    "cargo": {
        "clean": "cargo clean",
        "restore": "cargo fetch",
        "build": "cargo build",
        "build:release": "cargo build --release",
        "test": "cargo test",
        "test:coverage": None,
        "check": ["lint", "format-check"],
        "check:fix": "cargo fmt && cargo clippy --fix --allow-dirty --allow-staged",
        "lint": "cargo clippy -- -D warnings",
        "format": "cargo fmt",
        "format-check": "cargo fmt --check",
        "bench": "cargo bench",
        "demo": "cargo run --example demo",
        "doc": "cargo doc --no-deps",
        "pack": "cargo package",
        "publish": "cargo publish",
    },
    "go": {
        "clean": "go clean",
        "restore": "go mod download",
        "build": "go build ./...",
        "build:release": "go build -ldflags='-s -w' ./...",
        "test": "go test ./...",
        "test:coverage": "go test -cover ./...",
        "check": ["lint", "vet", "format-check"],
        "check:fix": "go fmt ./...",
        "lint": "golangci-lint run",
        "vet": "go vet ./...",
        "format": "go fmt ./...",
        "format-check": "test -z \"$(gofmt -l .)\"",
        "bench": "go test -bench=. ./...",
        "demo": "go run ./cmd/demo",
        "doc": "go doc ./...",
        "pack": None,
        "publish": None,
    },
    "zig": {
        "clean": "rm -rf zig-out .zig-cache",
        "restore": None,
        "build": "zig build",
        "build:release": "zig build -Doptimize=ReleaseFast",
        "test": "zig build test",
        "test:coverage": None,
        "check": ["format-check"],
        "check:fix": "zig fmt .",
        "lint": None,
        "format": "zig fmt .",
        "format-check": "zig fmt --check .",
        "bench": None,
        "demo": "zig build run",
        "doc": None,
        "pack": None,
        "publish": None,
    },
    "cmake": {
        "clean": "rm -rf build",
        "restore": "cmake -B build -S .",
        "build": "cmake --build build",
        "build:release": "cmake -B build -S . -DCMAKE_BUILD_TYPE=Release && cmake --build build --config Release",
        "test": "ctest --test-dir build",
        "test:coverage": None,
        "check": None,
        "check:fix": None,
        "lint": None,
        "format": None,
        "format-check": None,
        "bench": None,
        "demo": None,
        "doc": None,
        "pack": "cpack --config build/CPackConfig.cmake",
        "publish": None,
    },
    "make": {
        "clean": "make clean",
        "restore": None,
        "build": "make",
        "build:release": "make release",
        "test": "make test",
        "test:coverage": None,
        "check": "make check",
        "check:fix": None,
        "lint": "make lint",
        "format": "make format",
        "format-check": None,
        "bench": "make bench",
        "demo": "make demo",
        "doc": "make doc",
        "pack": None,
        "publish": None,
    },
    # ── JavaScript / TypeScript ─────────────────────────────────
    "npm": {
        "clean": "rm -rf node_modules dist",
        "restore": "npm ci",
        "build": "npm run build",
        "build:release": "npm run build",
        "test": "npm test",
        "test:coverage": "npm run test:coverage",
        "check": ["lint", "typecheck", "format-check"],
        "check:fix": "npm run lint -- --fix",
        "lint": "npm run lint",
        "typecheck": "npm run typecheck",
        "format": "npm run format",
        "format-check": "npm run format:check",
        "bench": "npm run bench",
        "demo": "npm run demo",
        "doc": "npm run doc",
        "pack": "npm pack",
        "publish": "npm publish",
    },
    "pnpm": {
        "clean": "rm -rf node_modules dist",
        "restore": "pnpm install --frozen-lockfile",
        "build": "pnpm build",
        "build:release": "pnpm build",
        "test": "pnpm test",
        "test:coverage": "pnpm test:coverage",
        "check": ["lint", "typecheck", "format-check"],
        "check:fix": "pnpm lint --fix",
        "lint": "pnpm lint",
        "typecheck": "pnpm typecheck",
        "format": "pnpm format",
        "format-check": "pnpm format:check",
        "bench": "pnpm bench",
        "demo": "pnpm demo",
        "doc": "pnpm doc",
        "pack": "pnpm pack",
        "publish": "pnpm publish",
    },
    "yarn": {
        "clean": "rm -rf node_modules dist",
        "restore": "yarn install --frozen-lockfile",
        "build": "yarn build",
        "build:release": "yarn build",
        "test": "yarn test",
        "test:coverage": "yarn test:coverage",
        "check": ["lint", "typecheck", "format-check"],
        "check:fix": "yarn lint --fix",
        "lint": "yarn lint",
        "typecheck": "yarn typecheck",
        "format": "yarn format",
        "format-check": "yarn format:check",
        "bench": "yarn bench",
        "demo": "yarn demo",
        "doc": "yarn doc",
        "pack": "yarn pack",
        "publish": "yarn publish",
    },
    "bun": {
        "clean": "rm -rf node_modules dist",
        "restore": "bun install --frozen-lockfile",
        "build": "bun run build",
        "build:release": "bun run build",
        "test": "bun test",
        "test:coverage": "bun test --coverage",
        "check": ["lint", "typecheck", "format-check"],
        "check:fix": "bun run lint --fix",
        "lint": "bun run lint",
        "typecheck": "bun run typecheck",
        "format": "bun run format",
        "format-check": "bun run format:check",
        "bench": "bun run bench",
        "demo": "bun run demo",
        "doc": None,
        "pack": "bun pm pack",
        "publish": "bun publish",
    },
    "deno": {
        "clean": None,
        "restore": "deno install",
        "build": "deno check **/*.ts",
        "build:release": "deno check **/*.ts",
        "test": "deno test",
        "test:coverage": "deno test --coverage",
        "check": ["lint", "format-check"],
        "check:fix": "deno lint --fix && deno fmt",
        "lint": "deno lint",
        "format": "deno fmt",
        "format-check": "deno fmt --check",
        "bench": "deno bench",
        "demo": "deno run demo.ts",
        "doc": "deno doc",
        "pack": None,
        "publish": "deno publish",
    },
    # ── Python ──────────────────────────────────────────────────
    "python": {
        "clean": "rm -rf build dist .pytest_cache",
        "restore": "pip install -e .",
        "build": "python -m build",
        "build:release": "python -m build",
        "test": "pytest",
        "test:coverage": "pytest --cov",
        "check": ["lint", "typecheck", "format-check"],
        "check:fix": "ruff check --fix . && ruff format .",
        "lint": "ruff check .",
        "typecheck": "mypy .",
        "format": "ruff format .",
        "format-check": "ruff format --check .",
        "bench": None,
        "demo": "python demo.py",
        "doc": None,
        "pack": "python -m build",
        "publish": "twine upload dist/*",
    },
    "uv": {
        "clean": "rm -rf build dist .pytest_cache",
        "restore": "uv sync --all-extras",
        "build": "uv build",
        "build:release": "uv build",
        "test": "uv run pytest",
        "test:coverage": "uv run pytest --cov",
        "check": ["lint", "typecheck", "format-check"],
        "check:fix": "uv run ruff check --fix . && uv run ruff format .",
        "lint": "uv run ruff check .",
        "typecheck": "uv run mypy .",
        "format": "uv run ruff format .",
        "format-check": "uv run ruff format --check .",
        "bench": None,
        "demo": "uv run python demo.py",
        "doc": None,
        "pack": "uv build",
        "publish": "uv publish",
    },
    "poetry": {
        "clean": "rm -rf build dist .pytest_cache",
        "restore": "poetry install",
        "build": "poetry build",
        "build:release": "poetry build",
        "test": "poetry run pytest",
        "test:coverage": "poetry run pytest --cov",
        "check": ["lint", "typecheck", "format-check"],
        "check:fix": "poetry run ruff check --fix . && poetry run ruff format .",
        "lint": "poetry run ruff check .",
        "typecheck": "poetry run mypy .",
        "format": "poetry run ruff format .",
        "format-check": "poetry run ruff format --check .",
        "bench": None,
        "demo": "poetry run python demo.py",
        "doc": None,
        "pack": "poetry build",
        "publish": "poetry publish",
    },
    # ── JVM ─────────────────────────────────────────────────────
    "gradle": {
        "clean": "gradle clean",
        "restore": "gradle dependencies",
        "build": "gradle build -x test",
        "build:release": "gradle build -x test",
        "test": "gradle test",
        "test:coverage": "gradle jacocoTestReport",
        "check": "gradle check -x test",
        "check:fix": "gradle spotlessApply",
        "lint": None,
        "format": "gradle spotlessApply",
        "format-check": "gradle spotlessCheck",
        "bench": None,
        "demo": "gradle run",
        "doc": "gradle javadoc",
        "pack": "gradle jar",
        "publish": "gradle publish",
    },
    "maven": {
        "clean": "mvn clean",
        "restore": "mvn dependency:resolve",
        "build": "mvn compile",
        "build:release": "mvn package -DskipTests",
        "test": "mvn test",
        "test:coverage": None,
        "check": "mvn verify -DskipTests",
        "check:fix": None,
        "lint": None,
        "format": None,
        "format-check": None,
        "bench": None,
        "demo": "mvn exec:java",
        "doc": "mvn javadoc:javadoc",
        "pack": "mvn package",
        "publish": "mvn deploy",
    },
    "sbt": {
        "clean": "sbt clean",
        "restore": "sbt update",
        "build": "sbt compile",
        "build:release": "sbt compile",
        "test": "sbt test",
        "test:coverage": "sbt coverage test coverageReport",
        "check": ["format-check"],
        "check:fix": "sbt scalafmtAll",
        "lint": None,
        "format": "sbt scalafmtAll",
        "format-check": "sbt scalafmtCheckAll",
        "bench": None,
        "demo": "sbt run",
        "doc": "sbt doc",
        "pack": "sbt package",
        "publish": "sbt publish",
    },
    # ── .NET ────────────────────────────────────────────────────
    "dotnet": {
        "clean": "dotnet clean",
        "restore": "dotnet restore",
        "build": "dotnet build",
        "build:release": "dotnet build -c Release",
        "test": "dotnet test",
        "test:coverage": "dotnet test --collect:\"XPlat Code Coverage\"",
        "check": ["format-check"],
        "check:fix": "dotnet format",
        "lint": None,
        "format": "dotnet format",
        "format-check": "dotnet format --verify-no-changes",
        "bench": None,
        "demo": None,
        "doc": None,
        "pack": "dotnet pack",
        "publish": None,
    },
    # ── Apple ───────────────────────────────────────────────────
    "swift": {
        "clean": "swift package clean",
        "restore": "swift package resolve",
        "build": "swift build",
        "build:release": "swift build -c release",
        "test": "swift test",
        "test:coverage": "swift test --enable-code-coverage",
        "check": None,
        "check:fix": None,
        "lint": "swiftlint",
        "format": "swift-format -i -r .",
        "format-check": "swift-format lint -r .",
        "bench": None,
        "demo": "swift run demo",
        "doc": None,
        "pack": None,
        "publish": None,
    },
    # ── Others ──────────────────────────────────────────────────
    "bundler": {
        "clean": None,
        "restore": "bundle install",
        "build": "bundle exec rake build",
        "build:release": "bundle exec rake build",
        "test": "bundle exec rake test",
        "test:coverage": None,
        "check": ["lint"],
        "check:fix": "bundle exec rubocop -a",
        "lint": "bundle exec rubocop",
        "format": "bundle exec rubocop -a",
        "format-check": "bundle exec rubocop --format offenses",
        "bench": None,
        "demo": "bundle exec ruby demo.rb",
        "doc": "bundle exec yard doc",
        "pack": "gem build *.gemspec",
        "publish": "gem push *.gem",
    },
    "composer": {
        "clean": None,
        "restore": "composer install",
        "build": None,
        "build:release": None,
        "test": "composer test",
        "test:coverage": None,
        "check": ["lint"],
        "check:fix": None,
        "lint": "composer run-script lint",
        "format": None,
        "format-check": None,
        "bench": None,
        "demo": "php demo.php",
        "doc": None,
        "pack": None,
        "publish": None,
    },
    "mix": {
        "clean": "mix clean",
        "restore": "mix deps.get",
        "build": "mix compile",
        "build:release": "MIX_ENV=prod mix compile",
        "test": "mix test",
        "test:coverage": "mix test --cover",
        "check": ["lint", "format-check"],
        "check:fix": "mix format",
        "lint": "mix credo",
        "format": "mix format",
        "format-check": "mix format --check-formatted",
        "bench": None,
        "demo": "mix run demo.exs",
        "doc": "mix docs",
        "pack": "mix hex.build",
        "publish": "mix hex.publish",
    },
    "stack": {
        "clean": "stack clean",
        "restore": "stack setup",
        "build": "stack build",
        "build:release": "stack build --ghc-options=-O2",
        "test": "stack test",
        "test:coverage": "stack test --coverage",
        "check": ["lint"],
        "check:fix": None,
        "lint": "hlint .",
        "format": "ormolu --mode inplace $(find . -name '*.hs')",
        "format-check": "ormolu --mode check $(find . -name '*.hs')",
        "bench": "stack bench",
        "demo": "stack run",
        "doc": "stack haddock",
        "pack": "stack sdist",
        "publish": "stack upload .",
    },
    "cabal": {
        "clean": "cabal clean",
        "restore": "cabal update",
        "build": "cabal build",
        "build:release": "cabal build -O2",
        "test": "cabal test",
        "test:coverage": "cabal test --enable-coverage",
        "check": ["lint"],
        "check:fix": None,
        "lint": "hlint .",
        "format": "ormolu --mode inplace $(find . -name '*.hs')",
        "format-check": "ormolu --mode check $(find . -name '*.hs')",
        "bench": "cabal bench",
        "demo": "cabal run",
        "doc": "cabal haddock",
        "pack": "cabal sdist",
        "publish": "cabal upload",
    },
    "dune": {
        "clean": "dune clean",
        "restore": "opam install . --deps-only",
        "build": "dune build",
        "build:release": "dune build --profile release",
        "test": "dune test",
        "test:coverage": None,
        "check": ["format-check"],
        "check:fix": "dune fmt",
        "lint": None,
        "format": "dune fmt",
        "format-check": "dune build @fmt",
        "bench": None,
        "demo": "dune exec ./demo.exe",
        "doc": "dune build @doc",
        "pack": None,
        "publish": "opam publish",
    },
    "lein": {
        "clean": "lein clean",
        "restore": "lein deps",
        "build": "lein compile",
        "build:release": "lein uberjar",
        "test": "lein test",
        "test:coverage": None,
        "check": "lein check",
        "check:fix": None,
        "lint": None,
        "format": None,
        "format-check": None,
        "bench": None,
        "demo": "lein run",
        "doc": None,
        "pack": "lein jar",
        "publish": "lein deploy clojars",
    },
    "rebar3": {
        "clean": "rebar3 clean",
        "restore": "rebar3 get-deps",
        "build": "rebar3 compile",
        "build:release": "rebar3 as prod compile",
        "test": "rebar3 eunit",
        "test:coverage": "rebar3 cover",
        "check": ["lint"],
        "check:fix": None,
        "lint": "rebar3 dialyzer",
        "format": "rebar3 fmt",
        "format-check": "rebar3 fmt --check",
        "bench": None,
        "demo": None,
        "doc": "rebar3 edoc",
        "pack": None,
        "publish": "rebar3 hex publish",
    },
    "r": {
        "clean": None,
        "restore": "Rscript -e \"remotes::install_deps()\"",
        "build": "R CMD build .",
        "build:release": "R CMD build .",
        "test": "Rscript -e \"devtools::test()\"",
        "test:coverage": "Rscript -e \"covr::package_coverage()\"",
        "check": "R CMD check .",
        "check:fix": None,
        "lint": "Rscript -e \"lintr::lint_package()\"",
        "format": "Rscript -e \"styler::style_pkg()\"",
        "format-check": None,
        "bench": None,
        "demo": None,
        "doc": "Rscript -e \"devtools::document()\"",
        "pack": None,
        "publish": None,
    },
}


def _build_catalog() -> Mapping[str, Toolchain]:
    return MappingProxyType(
        {name: Toolchain(name=name, commands=commands) for name, commands in _RAW.items()}
    )


#: Built-in toolchains, keyed by name.  Read-only.
BUILTIN_TOOLCHAINS: Mapping[str, Toolchain] = _build_catalog()


def get_builtin(name: str) -> Toolchain | None:
    """Look up a built-in toolchain by name."""
    return BUILTIN_TOOLCHAINS.get(name)


def is_builtin(name: str) -> bool:
    return name in BUILTIN_TOOLCHAINS


def builtin_names() -> list[str]:
    """All built-in toolchain names, sorted."""
    return sorted(BUILTIN_TOOLCHAINS)
