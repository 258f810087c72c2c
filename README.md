# bridgeinspect

HTTP-layer components for a bridge defect inspection service. The package
provides a uniform JSON response envelope, a framework-neutral request
context, authentication, CORS and ownership middleware, request handlers for
drones, reports and statistics, an in-memory TTL cache and a YAML
configuration loader.

## Installation

```
pip install .
```

To run the test suite as well:

```
pip install ".[test]"
pytest
```

## Modules

- `bridgeinspect.response`: the `Response` envelope (`code`, `message`,
  and `data` / `error` only when set; `to_dict()` gives the JSON body) and
  `Context`, which carries a request's path `params`, `query`, JSON `body`,
  `session` and stored `values`, and records the reply in `status`,
  `payload`, `headers` and `file_path`. `Context.run(*handlers)` calls
  handlers in order until one calls `abort()`. Helpers write the envelope:
  `success`, `success_with_message`, `error`, `error_with_detail`,
  `bad_request`, `unauthorized`, `unauthorized_with_message`, `forbidden`,
  `forbidden_with_message`, `not_found`, `internal_error` and
  `internal_error_with_detail`.
- `bridgeinspect.cache`: `MemoryCache`, a thread-safe store that keeps
  values as JSON, with optional expiry (seconds or `timedelta`), wildcard
  deletion through `delete_pattern`, `cleanup_expired`, `clear`, `len()`,
  and `CacheMiss` / `CacheExpired` errors from `get`. A daemon thread
  sweeps expired entries once a value has been stored; `close()` (or using
  the cache as a context manager) stops it. `STATS_CACHE` is a shared
  instance, alongside `CACHE_KEY_*` format strings and `CACHE_TTL_*`
  durations for statistics.
- `bridgeinspect.config`: dataclasses `Config`, `ServerConfig`,
  `DatabaseConfig`, `PythonServiceConfig`, `UploadConfig`, `SessionConfig`
  and `CORSConfig`, with `parse_config`, `validate_config`,
  `create_upload_dirs`, `load_config` and `get_config`.
- `bridgeinspect.auth`: `auth_required(find_user)`, `admin_required()`,
  `check_resource_ownership(owner_lookups, resource_type)`,
  `cors_middleware(cfg)` (returning a callable `CORSSettings`),
  `get_current_user` and the `RecordNotFound` error that lookups raise.
- `bridgeinspect.ownership`: `bridge_ownership_required`,
  `drone_ownership_required`, `defect_ownership_required` and
  `report_ownership_required`. Administrators are let through; other users
  get 400 for a malformed id, 404 for a missing resource and 403 unless
  they own it, in which case the resource is stored on the context.
- `bridgeinspect.drone_handler`, `bridgeinspect.report_handler`,
  `bridgeinspect.stats_handler`: `DroneHandler`, `ReportHandler` and
  `StatsHandler`. Each is built from a use-case object, reads the request
  from a `Context`, calls the use case and writes the JSON reply.

## Example

```python
from dataclasses import dataclass

from bridgeinspect.auth import RecordNotFound, admin_required, auth_required
from bridgeinspect.cache import CacheMiss, MemoryCache
from bridgeinspect.response import Context, success

with MemoryCache() as cache:
    cache.set("stats:overview:1", {"bridge_count": 1}, 300)
    print(cache.get("stats:overview:1"))      # {'bridge_count': 1}
    cache.delete_pattern("stats:overview:*")
    try:
        cache.get("stats:overview:1")
    except CacheMiss:
        print("gone")


@dataclass
class User:
    id: int
    role: str

    def is_admin(self):
        return self.role == "admin"


users = {1: User(1, "user")}


def find_user(user_id):
    try:
        return users[user_id]
    except KeyError:
        raise RecordNotFound(user_id) from None


ctx = Context(session={"user_id": 1})
ctx.run(auth_required(find_user), admin_required(), lambda c: success(c, "ok"))
print(ctx.status, ctx.payload)  # 403 {'code': 403, 'message': '权限不足'}
```

## Configuration

`load_config(path="config.yaml")` reads a YAML file with `server`,
`database`, `python_service`, `upload`, `session` and `cors` sections;
unknown keys are ignored. It checks that `database.dsn` and
`session.secret` are set and that `server.port` is between 1 and 65535,
raising `ConfigError` otherwise, creates the upload directories, and
remembers the result so later calls return the same object. `get_config`
returns that configuration, loading `config.yaml` the first time.

## What this package does not do

It contains no HTTP server, router or session-cookie handling: the
middleware and handlers work on `Context` objects that the caller builds
and inspects. It has no database, user accounts, login, detection or PDF
report generation of its own; the handlers and ownership guards call
repository, service and use-case objects that the caller supplies.