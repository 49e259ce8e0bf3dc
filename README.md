# waystation

A self-hosted travel and trip planner. It keeps trips in a local SQLite
database and serves a JSON API and a browser dashboard from one WSGI
application.

## Installing

```
pip install .
```

## Running

```
waystation
```

The server listens on port 9700 and keeps its data in `./waystation-data`
(the database file is `waystation.db` inside it). Both can be changed:

```
waystation --port 8080 --data /var/lib/waystation
```

The single-dash forms `-port` and `-data` work too. The options take
precedence over the `PORT` and `DATA_DIR` environment variables, which in turn
take precedence over the defaults. Once it is running, open
`http://localhost:<port>/ui` for the dashboard; the API lives under `/api`,
and `/` redirects to `/ui`.

## Free and Pro tiers

Without a licence key the server runs in the free tier, which allows up to
five trips; creating a sixth answers `402` with an error message. Set
`STOCKYARD_LICENSE_KEY` to a valid signed key (`SY-<payload>.<signature>`,
Ed25519-signed, optionally with an expiry) to lift the limit. `GET /api/tier`
reports the active tier.

## API

All responses are JSON. Errors come back as `{"error": "..."}`.

| Method | Path | Purpose |
| ------ | ---- | ------- |
| GET | `/api/trips` | List trips, newest first; `?q=` searches names, `?status=` filters |
| POST | `/api/trips` | Create a trip (`name` is required); answers `201` with the trip |
| GET | `/api/trips/{id}` | Fetch one trip, or `404` |
| PUT | `/api/trips/{id}` | Update a trip; empty text fields keep their old values |
| DELETE | `/api/trips/{id}` | Delete a trip and its extra fields |
| GET | `/api/stats` | `total` and `by_status` counts |
| GET | `/api/health` | `status`, `service` and `count` |
| GET | `/api/config` | Personalisation settings from `config.json`, or `{}` |
| GET | `/api/extras/{resource}` | All custom-field data for a resource, keyed by record id |
| GET | `/api/extras/{resource}/{id}` | Custom-field data for one record, or `{}` |
| PUT | `/api/extras/{resource}/{id}` | Store a JSON object as that record's custom-field data |
| GET | `/api/tier` | Active tier and an upgrade link |

A trip has the fields `id`, `name`, `destination`, `start_date`, `end_date`,
`budget` (an integer), `itinerary`, `status`, `notes` and `created_at`. The
server assigns `id` and `created_at`.

## Personalisation

Place a `config.json` in the data directory to customise the dashboard. It may
set `dashboard_title`, `empty_state_message`, `primary_label` and a list of
`custom_fields`, each with a `name`, a `label` and optionally a `type` and
`options`. The dashboard saves custom-field values through the extras API.
The file is read once, when the server starts.

## Using it as a library

```python
from waystation.store import Store, Trip
from waystation.limits import free_limits
from waystation.server import Server

with Store("./waystation-data") as db:
    trip = db.create(Trip(name="Lisbon", destination="Portugal"))
    app = Server(db, free_limits(), "./waystation-data")
    response = app.handle("GET", "/api/trips", {}, b"")
    print(response.status, response.body)
```

`Server.handle` returns a `Response` with `status`, `body` and `headers`.
`Server` is also a WSGI application and can be handed to any WSGI server.
`waystation.limits` offers `free_limits`, `pro_limits`, `default_limits`,
`limit_reached` and `validate_license_key`, and `waystation.ui.dashboard_html`
returns the dashboard page.

## What it does not do

There are no user accounts and no authentication: anyone who can reach the
port can read and change every trip. The built-in command serves plain HTTP;
put it behind a reverse proxy for TLS.