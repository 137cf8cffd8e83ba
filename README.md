# qmstr

Tools for instrumenting a build and describing what it produced: which
targets were derived from which sources, and which license identifiers those
sources declare.

## Installation

```
pip install .
```

For running the test suite:

```
pip install .[test]
pytest
```

## Instrumenting a build

The `qmstr` command (`qmstr.instrument.main`) creates a `bin/` directory with
symbolic links to a `qmstr-wrapper` executable for `gcc`, `g++`, `ar`, `ld`,
`as` and `objcopy`, puts that directory in front of `PATH`, sets `CC`, `CXX`
and `CMAKE_LINKER`, sets `QMSTR_INSTRUMENTATION_HOME` to the work directory,
and runs your build command in that environment:

```
qmstr make -j4
```

`qmstr-wrapper` is looked for next to the running program first and then on
`PATH`; if it is found in neither place, `qmstr` reports an error and exits
with status 1.

Options:

- `--instdir DIR` creates the instrumentation in `DIR` instead of a fresh
  temporary directory.
- `--keep` keeps the instrumentation directory after the command finishes
  and prints the `export` lines needed to reuse it in a shell. With `--keep`
  the command may be omitted.
- `--verbose` prints diagnostic messages.

The exit code of `qmstr` is the exit code of the build command; a command
that cannot be started gives 1, and one killed by a signal gives -1.

The same steps are available from Python through
`qmstr.instrument.run(payload_cmd, instdir, keep)`,
`setup_compiler_instrumentation(work_dir, wrapper_path, keep)`, `link(...)`
and `run_payload_command(command, *args)`.

## Configuration

Configuration is read from YAML files with a top-level `project` key:

```yaml
project:
  name: "Example"
  server:
    rpcaddress: ":50051"
  analysis:
    - analyzer: spdx-analyzer
      name: "SPDX identifiers"
      config:
        workdir: "/buildroot"
  reporting:
    - reporter: console-reporter
      name: "Console"
```

```python
from qmstr.config import read_config_from_files, ConfigError

try:
    config = read_config_from_files("/etc/qmstr/qmstr.yaml", "qmstr.yaml")
except ConfigError as err:
    print(err)
else:
    print(config.rpc_port())
```

Files are read in order, later ones merged over earlier ones; missing files
are skipped, but at least one must exist. `read_config_from_bytes` reads a
single document, and `serialize_config` writes a `MasterConfig` back to YAML.
Every analyzer and reporter needs a `name` and an `analyzer`/`reporter`
entry; names must be unique, and so must the portable `posixname` derived
from the name when it is not given. The RPC address must have the form
`host:port`.

## Library pieces

- `qmstr.nodes` holds the graph node types (`FileNode`, `PackageNode`,
  `ProjectNode`, `InfoNode`, `DiagnosticNode`) and `new_file_node`,
  `set_relative_path` and `sanitize_file_node`.
- `qmstr.arbuilder.ArBuilder` reads an `ar` command line and returns the
  archive as a target node derived from its members.
- `qmstr.idparsing.parse_node_id` turns identifiers such as
  `file:/dev/null`, `file:hash:deadbeef` or `package:name` into node objects;
  `create_node` also applies field flags such as `--name` or `--broken`.
- `qmstr.ctl.fix_cmd_line` inserts the node type after `create` or `update`
  in a command line such as `qmstrctl create file:hash:12345`.
- `qmstr.spdx.detect_spdx_license` finds the SPDX license identifier tag in
  the first 100 lines of a file; `is_valid_license` checks the identifier
  against the list of known ones, and `SpdxAnalyzer.diagnose` turns the
  result into an info, warning or error diagnostic.
- `qmstr.fileutil.hash_file` computes the SHA-1 of a file as used for node
  hashes; `posix_portable_filename` replaces characters outside the POSIX
  portable set with `_`.

```python
from qmstr.arbuilder import ArBuilder

builder = ArBuilder("/tmp")
nodes = builder.analyze(["ar", "rcs", "libtest.a", "test.o"])
print(nodes[0].path, [dep.path for dep in nodes[0].derived_from])
```

## What this package does not do

- It does not include `qmstr-wrapper` itself; the `qmstr` command only links
  to an existing one.
- It has no master server, no network client and no graph storage: nodes and
  diagnostics are plain Python objects returned to the caller, and
  `sanitize_file_node` takes any object with a
  `get_file_node_hash_by_path` method as its database.
- It has no `qmstrctl` program; only the command-line fix-up and the node
  identifier parsing are provided.
- It does not run external license or copyright scanners.