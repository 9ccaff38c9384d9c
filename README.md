# microceph

Bookkeeping for a small Ceph cluster, kept in SQLite. The package holds
the cluster database schema and the records of disks (OSDs), services
and configuration keys. It also has the safety checks that run before a
node is removed, and a few helpers for validating network and OSD input.

## Installation

```
pip install .
```

`psutil` is installed with the package. `microceph.network` uses it to
read the host's interface addresses.

## Modules

- `microceph.common`
  - `BootstrapConfig` (`mon_ip`, `public_net`, `cluster_net`), with
    `encode_bootstrap_config` and `decode_bootstrap_config`. These convert
    it to and from a map with the keys `MonIp`, `PublicNet` and
    `ClusterNet`. Missing keys decode as empty strings.
  - `get_path_const` builds a `PathConst` of the conf, run, data and log
    directories from `SNAP_DATA` and `SNAP_COMMON`.
  - `get_path_file_mode` maps those directories to `0o750` and `0o700`.
  - `is_subset`.
  - Constants such as `MIN_OSD_SIZE`, `CLIENT_CONFIG_GLOBAL_HOST` (`"*"`)
    and `BOOTSTRAP_PORT`.
  - The exceptions `StatusError`, `NotFoundError` (status 404) and
    `ConflictError` (status 409). Each carries a `status` attribute.
- `microceph.network`
  - `find_ip_on_subnet(subnet)` returns the first global unicast host
    address on the subnet, or raises `LookupError`.
  - `find_network_address(address)` returns the host's `address/prefix`
    entry for that address. It raises `ValueError` for an invalid address
    and `LookupError` when the address is not on the host.
  - `is_ip_on_subnet(address, subnet)` returns `False` on invalid input.
- `microceph.schema`
  - `schema_update_1` creates `config`, `disks` and `services`.
  - `schema_update_2` creates `client_config` and its unique index.
  - `schema_update_3` rebuilds `disks` keyed by OSD number.
  - `apply_schema_extensions(connection, applied)` runs every update newer
    than `applied` and returns the new version.
- `microceph.config_items`, `microceph.services`, `microceph.disks` and
  `microceph.client_config_items` provide create, read, update and delete
  functions for each table. They work on the dataclasses `ConfigItem`,
  `Service`, `Disk` and `ClientConfigItem`. The `get_*s` functions take
  any number of filters (`ConfigItemFilter`, `ServiceFilter`,
  `DiskFilter`, `ClientConfigItemFilter`) and return the rows that match
  any of them. With no filter they return all rows. An empty filter
  raises `ValueError`. A missing record raises `NotFoundError`, and
  creating a duplicate raises `ConflictError`. These functions do not
  commit; the caller controls the transaction.
- `microceph.client_configs`
  - `ClientConfigQuery` merges global (`"*"`) and per-host client
    settings. `get_all_for_host` overlays host values on the global ones
    with `squash_client_configs`.
  - `to_client_configs` turns records into `ClientConfig` entries.
  - The query methods commit their writes.
- `microceph.osd_queries`
  - `members_disk_count`.
  - `MemberCounter` (`count`, `count_exclude`).
  - `OSDQuery` (`have_osd`, `path`, `delete`, `list`, `update_path`).
    `list` returns `DiskEntry` items.
- `microceph.checks`
  - `parse_osd_id` accepts `"3"` or `"osd.3"`.
  - `pre_check_bootstrap_config` raises `ValueError` when the mon address
    is not on the given public network.
- `microceph.removal`
  - `remove_node(client, node, force)`, `check_prerequisites` and
    `delete_node_services`, which raise `RemovalError`.

## Example

```python
import sqlite3

from microceph.schema import apply_schema_extensions
from microceph.config_items import ConfigItem, create_config_item, get_config_item

conn = sqlite3.connect(":memory:")
conn.execute("CREATE TABLE internal_cluster_members (id INTEGER PRIMARY KEY, name TEXT UNIQUE)")
apply_schema_extensions(conn, 0)

create_config_item(conn, ConfigItem(key="fsid", value="placeholder"))
print(get_config_item(conn, "fsid").value)
```

The schema updates refer to an `internal_cluster_members` table, which
the package does not create. Make that table first, with at least the
columns `id` and `name`.

## Node removal

`remove_node` works with any client object that provides these methods:

- `get_cluster_members()`
- `get_disks()`, returning items with a `location` attribute
- `get_services()`, returning items with `location` and `service`
  attributes
- `delete_service(location, service)`
- `delete_cluster_member(name, force)`

Unless `force` is true, the checks refuse to remove the node if:

- the node is unknown;
- the node still has disks;
- the other nodes would be left with fewer than three `mon`, one `mgr`
  or one `mds` services.

The node's services are then deleted. A failure to delete one service is
only logged. Finally the member itself is deleted.

## What this package does not do

This package is a library only. It does not provide:

- a command-line tool;
- a daemon or HTTP API;
- cluster membership or join tokens;
- any code that starts, configures or talks to Ceph itself.

It keeps and checks the records; acting on them is left to the caller.