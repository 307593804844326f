# nightingale

Data models for a Prometheus-style alert management service: teams
(user groups), business groups, alert mutes, active and historical alert
events, aggregation and metric views, metric descriptions, dashboards and
charts, monitored targets, task templates and task records. Everything is
kept in an SQLite database and uses nothing beyond the Python standard
library.

Python 3.10 or later is required.

## Installation

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Overview

All records live behind a `nightingale.db.Database`, which wraps one SQLite
file (or `":memory:"`) and creates every table when it is opened. Model
functions and methods take that database as an argument, so several
databases can be used side by side. Failed checks, conflicts and storage
errors raise `nightingale.db.ModelError`.

| Module | What it holds |
| --- | --- |
| `nightingale.db` | `Database`, `ModelError`, `Statistics`, `is_dangerous` |
| `nightingale.jsonfields` | `JSONObj`, `JSONArr` column values |
| `nightingale.configs` | key/value settings, `init_salt`, `crypto_pass` |
| `nightingale.user_group` | `UserGroup`, `UserGroupMember` and membership helpers |
| `nightingale.busi_group`, `nightingale.busi_group_member` | business groups and the teams managing them |
| `nightingale.alert_mute` | `AlertMute`, `TagFilter`, `parse_tag_filters` |
| `nightingale.alert_cur_event`, `nightingale.alert_his_event` | active and historical alert events |
| `nightingale.alert_aggr_view`, `nightingale.metric_view` | saved aggregation and metric views |
| `nightingale.metric_description` | metric descriptions |
| `nightingale.dashboard`, `nightingale.chart` | dashboards, chart groups, charts, shared charts |
| `nightingale.target` | monitored targets and their tags |
| `nightingale.task_tpl`, `nightingale.task_record` | task templates and task records |

Counters for a table are available through the `*_statistics` functions,
which return a `Statistics` with `total` and `last_updated`.

## Examples

Teams, business groups and targets:

```python
from nightingale.busi_group import busi_group_add
from nightingale.busi_group_member import BusiGroupMember
from nightingale.db import Database, ModelError
from nightingale.target import Target, target_get_by_ident, target_get_tags
from nightingale.user_group import UserGroup

with Database(":memory:") as db:
    team = UserGroup(name="ops", note="on-call team", create_by="alice")
    team.add(db)

    group = busi_group_add(
        db, "web", 0, "", [BusiGroupMember(user_group_id=team.id, perm_flag="rw")], "alice"
    )

    Target(ident="host-1", cluster="Default", group_id=group.id).add(db)
    target = target_get_by_ident(db, "host-1")
    target.add_tags(db, ["env=prod", "app=web"])
    print(target_get_tags(db, ["host-1"]))   # ['app=web', 'env=prod']

    try:
        group.delete(db)
    except ModelError as exc:
        print(exc)   # Some targets still in the BusiGroup
```

Alert aggregation views check their rule strings before they are stored:

```python
from nightingale.alert_aggr_view import AlertAggrView

AlertAggrView(name="by cluster", rule="field:cluster::tagkey:service").verify()
AlertAggrView(name="bad", rule="field:hostname").verify()  # raises ModelError
```

Active alert events can build the title of an aggregation card and be
turned into history records:

```python
from nightingale.alert_cur_event import AggrRule, AlertCurEvent

event = AlertCurEvent(cluster="Default", tags="service=api,,region=eu")
event.db2fe()
event.gen_card_title([AggrRule("field", "cluster"), AggrRule("tagkey", "service")])
# 'Default::api'

history = event.to_his()   # an AlertHisEvent
```

## What this package does not do

It is a storage layer only. It has no command, no HTTP API or server and
no user interface. It keeps no user accounts, logins or roles, and no
alert rules or alert subscriptions: team membership is stored by user id,
and events, mutes and views refer to rules and users by id without those
records being managed here. Nothing evaluates queries or sends
notifications.