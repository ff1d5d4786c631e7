# lobbyhost

Host-side logic for a dedicated game server that is launched by a fleet
service and registered with a lobby backend. It has no dependencies
outside the standard library.

## Modules

- `lobbyhost.policies`: `PlayerSessionCreationPolicy` and
  `PlayerSessionStatus` enums, with `policy_for_name`, `name_for_policy`,
  `status_for_name` and `name_for_status` to convert to and from wire names.
- `lobbyhost.requests`: `StopMatchBackfillRequest`, with `to_dict()` and
  `from_dict()`.
- `lobbyhost.process`: `LogParameters` (log paths, `log_path(index)`
  returns `None` out of range), `ProcessParameters` (start, update,
  health-check and terminate callbacks, port, log parameters), and the
  backfill models `AttributeType`, `AttributeValue`, `Player` and
  `StartMatchBackfillRequest`.
- `lobbyhost.messages`: `WebSocketPlayer` (`to_dict()`, `serialize()`,
  `player_from_dict`, `deserialize_player`) and the control messages
  `CreateGameSessionMessage`, `TerminateProcessMessage` and
  `UpdateGameSessionMessage`. `parse_message` decodes a JSON string or
  dictionary by its `Action` field and raises `ValueError` for unknown
  actions or malformed input.
- `lobbyhost.s2s`: `S2SClient`, a queued, one-at-a-time JSON request
  client for the lobby backend, and `UrllibTransport`, which posts requests
  on a small thread pool.
- `lobbyhost.game_mode`: `GameMode`, the server's lifecycle, plus
  `parse_server_parameters` and `parse_game_properties`.

## Policies and statuses

```python
from lobbyhost.policies import (
    PlayerSessionCreationPolicy,
    PlayerSessionStatus,
    name_for_policy,
    policy_for_name,
    status_for_name,
)

policy = policy_for_name("ACCEPT_ALL")
assert policy is PlayerSessionCreationPolicy.ACCEPT_ALL
assert name_for_policy(policy) == "ACCEPT_ALL"

# Unknown names map to NOT_SET rather than raising.
assert status_for_name("SOMETHING_ELSE") is PlayerSessionStatus.NOT_SET
```

## Fleet messages

```python
from lobbyhost.messages import CreateGameSessionMessage, parse_message

message = parse_message(
    '{"Action":"CreateGameSession","GameSessionId":"gs-1","Port":7777,'
    '"GameProperties":{"LOBBY_ID":"lobby-1"}}'
)
assert isinstance(message, CreateGameSessionMessage)
assert message.port == 7777
```

Missing numeric fields default to `-1`, missing strings to `""`.

## Server-to-server requests

`S2SClient` holds a queue of JSON requests and sends them one at a time.
Nothing happens in the background: call `run_callbacks()` regularly (once
per server tick) to collect a finished response, run its callback, send the
next queued request and send a heartbeat when one is due.

```python
from lobbyhost.s2s import S2SClient, UrllibTransport

client = S2SClient(
    app_id="12345",
    server_name="lobby-host",
    server_secret="secret",
    url="https://lobby.example.com/s2sdispatcher",
    auto_auth=True,
    transport=UrllibTransport(),
)
client.set_log_enabled(True)

def on_lobby_data(response: str) -> None:
    print("lobby data:", response)

client.request(
    '{"service":"lobby","operation":"GET_LOBBY_DATA","data":{"lobbyId":"lobby-1"}}',
    on_lobby_data,
)

# In the server loop:
client.run_callbacks()
```

- With `auto_auth=True` the first request queued while not authenticated
  authenticates the client on its own. With `auto_auth=False`, call
  `authenticate()` before making requests.
- Each callback receives the first entry of the response's
  `messageResponses` as compact JSON.
- A request that fails at the HTTP level reaches its callback as
  `{"status_code":900,"message":"HTTP Request failed"}`.
- A response with reason code `40365` (session expired) disconnects the
  client, authenticates again and resends the same request.
- Heartbeats are sent every 30 minutes unless the authentication response
  gives `heartbeatSeconds`; a failed heartbeat disconnects the client.
- `state`, `session_id`, `packet_id`, `heartbeat_interval` and `pending`
  report the client's condition; `close()` (or leaving a `with` block)
  cancels whatever is still queued.

Any object with a `send(url, body)` method returning something with
`poll()` (giving an `HttpResult`) and `cancel()` can be used as the
transport, and `clock` can replace `time.monotonic`.

## Game mode

`GameMode(sdk, s2s_factory=None, dedicated_server=True, exit_handler=None)`
ties the host together.

- `init_gamelift(argv, port)` reads the launch arguments, calls
  `sdk.init_sdk(...)` and then `sdk.process_ready(...)` with a
  `ProcessParameters` whose callbacks point back at the game mode. It
  returns those parameters, or `None` if `init_sdk` raised `SdkError`.
- `on_start_game_session(game_session_id, properties)` reads the lobby
  settings, connects to the lobby backend (on a dedicated server only),
  requests the lobby data and, when it arrives, reports the room as ready
  (`SYS_ROOM_READY`); it then calls `sdk.activate_game_session()`.
- `on_terminate()` reports the room as stopped (`SYS_ROOM_STOPPED`), calls
  `sdk.process_ending()` and calls the exit handler with a reason.
- `on_health_check()` returns `True`.
- Call `tick()` every frame and `check_disconnected_players()` once a
  second; call `on_post_login()` and `logout()` as players join and leave.
  Once an active session has had no players for
  `seconds_to_shut_down_empty_server` (10) checks, the host stops the room,
  ends the process with the fleet service and calls the exit handler. The
  last reason is kept in `exit_reason`.

The lobby backend's address is taken from the `LOBBYHOST_S2S_URL`
environment variable when the module is imported, and can be changed
through `GameMode.s2s_url`. Without `s2s_factory` an `S2SClient` is built
with `auto_auth=True`.

`parse_server_parameters(argv)` reads `-authtoken=`, `-hostid=`,
`-fleetid=` and `-websocketurl=` (matched without regard to case) and
fills in the current process id. `parse_game_properties(properties)` takes
a mapping or key/value pairs and picks out `APP_ID`, `LOBBY_ID`,
`SERVER_NAME`, `SERVER_SECRET`, `SERVER_HOST` and `SERVER_PORT`; any other
keys are collected in `unused`.

## What the package does not do

- It does not talk to the fleet service itself. `GameMode` expects an SDK
  object with `init_sdk`, `process_ready`, `activate_game_session` and
  `process_ending`, raising `SdkError` on failure; you supply it.
- It has no command-line program and no game loop: your server calls
  `tick()` and `check_disconnected_players()`, and decides what the exit
  handler does.
- It does not run the game or accept player connections; it only counts
  the players it is told about.