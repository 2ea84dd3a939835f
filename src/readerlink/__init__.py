"""

Reader Connections

- Reader: a peripheral device, such as a card reader, discovered over a local wireless channel and
  identified by its serial number.
- HardwareAdapter: the SDK boundary. Discovers readers, connects to and disconnects from them,
  and notifies when a reader drops its connection unexpectedly.
- PersistentStore: keeps the serial number of the chosen reader across restarts.
- ConnectionPolicy - how the manager connects:
 - auto: connects to the strongest reader discovered.
 - persist: like auto, but remembers the connected reader and prefers it on the next start.
 - manual: connects only when connect() is called.
 - persist-manual: remembers the connected reader, and reconnects to it on start. Otherwise
   waits for connect().
- ConnectionManager - tracks the desired reader, and reconciles each batch of discovered readers
  against it and the policy. Connection failures and unexpected disconnects restart the search.


## Threading

Everything runs on a single asyncio event loop. Adapter callbacks arrive on the loop and
spawn tasks for the follow-up work. The manager owns those tasks and cancels them on stop().

Only one connect sequence (abort discovery, disconnect, discover) runs at a time; further
requests while it runs are folded into one more pass. Likewise only one connect call to the
adapter is in flight, and discovery results arriving meanwhile are published but not acted upon.

"""
