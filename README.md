# vyx

Building blocks for a gateway that routes HTTP requests to worker processes
written in any language:

- **Route scanner** (`vyx.scanner`) – collects `@Route`, `@Page`, `@Validate`
  and `@Auth` annotations from Go, TypeScript and React TSX sources, checks
  them and writes a `route_map.json`.
- **IPC** (`vyx.ipc`) – a small binary frame protocol, a MessagePack codec and
  a Unix-domain-socket transport with one socket per worker.
- **Workers** – a process manager (`vyx.process_manager`) that starts and stops
  worker programs, and an in-memory worker repository (`vyx.repository`).
- **Gateway helpers** (`vyx.gateway`) – an HMAC JWT validator and a cached
  JSON Schema validator for request bodies.
- **Hello worker** (`vyx.hello_worker`) – a small worker that connects to the
  core, performs the handshake and answers two routes.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Annotating routes

Place annotations in line comments directly above a handler. The block ends at
the first line that is not a comment.

```go
// @Route(POST /api/users)
// @Validate(JsonSchema: "user_create")
// @Auth(roles: ["admin"])
func CreateUser() {}
```

```ts
// @Route(GET /api/products/:id)
// @Auth(roles: ["user", "guest"])
export async function getProduct(id: string) {}

// @Page(/dashboard)
export default function DashboardPage() {}
```

React pages in `.tsx` files use `@Page` with an optional `@Auth` line; they
are always served with `GET` and have the type `page`. An empty `@Page()`
is reported as an error.

## Scanning and generating the route map

```python
from vyx.scanner.go_parser import parse_go_files
from vyx.scanner.ts_parser import parse_ts_files
from vyx.scanner.tsx_parser import parse_tsx_files
from vyx.scanner.validator import validate
from vyx.scanner.generator import generate

routes, errors = parse_go_files("backend/go", "go:api")
problems = validate(routes)

errors = generate("backend/go", "backend/node", "frontend/pages", "build/route_map.json")
for error in errors:
    print(error)          # "<file>:<line>: <message>"
```

Each parser returns a list of `Route` objects and a list of
`AnnotationError`s. `Route.to_dict()` gives the form written to the route map
(path, method, worker_id, auth_roles, validate, type); the source file and
line are kept on the route but not written.

`validate` reports unknown HTTP methods, paths that do not start with `/` and
duplicate method/path pairs, each with the file and line of the annotation.
`generate` scans every directory that is given (an empty value skips it),
naming Go routes `go:<dir name>`, TypeScript routes `node:<dir name>` and
pages `node:ssr`. It validates the result and writes the route map only when
no error was found; otherwise it returns the errors and writes nothing.

## IPC framing

Each frame is a 4-byte little-endian payload length, a 1-byte message type
and the payload:

```python
import io
from vyx.ipc.framing import Message, MessageType, read_frame, write_frame

buffer = io.BytesIO()
write_frame(buffer, Message(MessageType.REQUEST, b'{"route":"/api/users"}'))
buffer.seek(0)
message = read_frame(buffer)
```

The message types are `REQUEST`, `RESPONSE`, `HEARTBEAT`, `ERROR` and
`HANDSHAKE`. `read_frame` raises `UnknownMessageTypeError` for a type it does
not know, `PayloadTooLargeError` when the announced length exceeds 16 MiB
(both are `FramingError`s) and `EOFError` when the stream ends before the
frame does.

`MsgPackCodec` offers `marshal` and `unmarshal` for payload bodies;
`unmarshal` raises `ValueError` for malformed input.

## Unix-domain-socket transport

```python
from vyx.ipc.uds import dial, platform_transport

transport = platform_transport()          # sockets under /tmp/vyx
transport.register("go:api")              # creates /tmp/vyx/go:api.sock, mode 0600

client = dial(transport.socket_path("go:api"))   # the worker side
```

`register` accepts the worker's single connection in the background. Once the
worker has connected, `transport.send` and `transport.receive` move frames to
and from it; using a worker that is not connected raises
`WorkerNotConnectedError`. `deregister` closes one worker's connection and
removes its socket file, and `close` shuts everything down. Both `Transport`
and `Client` work as context managers.

## Managing worker processes

```python
from vyx.process_manager import ProcessManager

manager = ProcessManager()
manager.spawn("go:api", "go", ["run", "."], "workers/go")
manager.stop("go:api")
manager.stop_all()
```

Each child runs in its own session and writes to this process's stdout and
stderr. A worker is asked to stop with SIGTERM and killed if it has not
exited within `shutdown_timeout` seconds (5 by default), in which case
`StopTimeoutError` is raised. An empty command raises `InvalidCommandError`,
a program that cannot be started raises `SpawnFailedError`, and stopping an
unknown worker raises `WorkerNotFoundError`; all are `ProcessError`s.
`send_heartbeat` only polls the child's exit status.

`MemoryWorkerRepository` stores any object with an `id` attribute, keeping
and handing out shallow copies (`save`, `find_by_id`, `find_all`, `delete`,
`live_worker_ids`).

## Gateway helpers

```python
from vyx.gateway.jwt_validator import JWTValidator
from vyx.gateway.schema_validator import SchemaValidator

claims = JWTValidator(b"secret").validate(token)   # Claims(user_id, roles)

schemas = SchemaValidator("schemas")
schemas.warm_up()                         # compile every schemas/*.json
schemas.validate("greet", b'{"name": "Ada"}')
```

`JWTValidator` accepts tokens signed with HS256, HS384 or HS512 and raises
`TokenError` for any token that does not verify. `SchemaValidator.validate`
returns the decoded body; a body that does not match its schema raises
`SchemaValidationError`, whose `details` list the failing field (a JSON
pointer) and message. A missing schema or a body that is not JSON raises
`SchemaError`. `invalidate_cache` drops the compiled schemas.

## Hello worker

The hello worker connects to the socket given by the core, sends its
handshake and serves `GET /api/hello` and `POST /api/greet`:

```
vyx-hello-worker --vyx-socket /tmp/vyx/go:api.sock
```

It answers heartbeats and keeps serving until the connection closes or it
receives SIGINT or SIGTERM. Its pieces (`Request`, `Response`, `dispatch`,
`serve`) can also be used directly.

## What this package does not do

There is no HTTP gateway server here: nothing listens for HTTP requests,
enforces rate limits or roles, dispatches requests to workers or proxies
WebSockets. There is no loader for a project configuration file, and the
socket transport works only on POSIX systems (no Windows named pipes). The
modules above are the parts such a gateway would be assembled from.