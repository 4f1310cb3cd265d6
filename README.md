# firecore

Building blocks for a chain-agnostic block ingestion pipeline:

- `firecore.blockpoller` holds a block poller that fetches blocks from a
  chain, follows forks through an in-memory fork database (`ForkDB`) and
  fires each block once, in order, when it links back to the last
  irreversible block (LIB). It can save its progress to a `cursor.json`
  state file and pick up from there after a restart.
- `firecore.chain` describes a chain (`Chain`, `ToolsConfig`,
  `TransformFlags`) and validates that description.
- `firecore.battlefield` compares two JSON block files and offers to show a
  diff when they differ.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Polling blocks

Subclass `BlockFetcher` for your chain, give it a `BlockHandler`, and run a
`BlockPoller`:

```python
from firecore.blockpoller.handler import FireBlockHandler
from firecore.blockpoller.model import Block
from firecore.blockpoller.poller import BlockFetcher, BlockPoller, SkippedBlockError


class MyFetcher(BlockFetcher):
    def is_block_available(self, block_num):
        ...  # True when block_num can already be fetched

    def fetch(self, block_num):
        ...  # return a Block, or raise SkippedBlockError(block_num)


poller = BlockPoller(
    MyFetcher(),
    FireBlockHandler("sf.acme.type.v1.Block"),
    state_store_path="/var/lib/acme-poller",
)
poller.run(start_block_num=0, block_fetch_batch_size=10)
```

- `run` calls the handler's `init`, fetches from `start_block_num` onward
  (skipping block numbers for which the fetcher raises `SkippedBlockError`)
  and then polls until `shutdown()` is called. `run_from(start_ref, ...)`
  starts from a known `BlockRef` instead.
- Blocks are fetched ahead in batches of up to `block_fetch_batch_size`,
  stopping at the first block the fetcher reports as not available, with up
  to ten fetches in parallel.
- Failed fetches are retried every `retry_delay` seconds, up to
  `fetch_block_retry_count` times (forever when it is `None`, the default).
- A block whose number is below `start_block_num`, or that was already
  fired, is not handed to the handler again.
- After a fetch error that exhausts the retries, the poller shuts down and
  `poller.error` holds the error.

`FireBlockHandler` writes a `FIRE INIT 3.0 <type>` line when it starts and
one `FIRE BLOCK` line per fired block to standard output (or to the `output`
stream it is given). It raises `ValueError` when a block's payload type URL
does not match the expected one; `clean()` strips the
`type.googleapis.com/` prefix before comparing.

State handling lives in `firecore.blockpoller.state_file`: `save_state`
writes `cursor.json` in a directory, `load_state` reads it back as a
`StateFile`, and `init_state` rebuilds a `ForkDB` from it, or starts fresh
from a given block when there is no readable state or when told to ignore
it. Without a `state_store_path`, nothing is saved.

## Describing a chain

```python
from firecore.chain import Chain

chain = Chain(
    short_name="acme",
    long_name="Acme",
    executable_name="acme-node",
    fully_qualified_module="example.com/firehose-acme",
    version="1.0.0",
    block_factory=lambda: object(),
    console_reader_factory=lambda *args: None,
)
chain.validate()                  # raises ChainValidationError listing every problem
chain.binary_name()               # "fireacme"
chain.root_logger_package_id()    # "example.com/firehose-acme/cmd/fireacme/cli"
chain.version_string()            # "1.0.0", plus commit and build date from build_info
```

`validate` trims the names, lower-cases `short_name`, and collects every
problem into one `ChainValidationError` (its `errors` attribute holds the
list). `ToolsConfig.sanitizer()` returns the configured block sanitizer, or
one that returns blocks unchanged.

## Comparing block files

From Python, `compare_block_files(reference, other)` returns `True` when the
two JSON files hold equal content. An optional `process_file_content`
callable can turn the raw bytes of both files into the values to compare.
When they differ it asks whether to show the difference (through the `ask`
callable, or on the terminal when standard input is one), runs the command
from `diff_command()` with `bash -c` — `diff -C 5 ... | less`, or the
program named in the `DIFF_EDITOR` environment variable — and prints the
command so it can be run again later.

## What this package does not do

- `firecore-battlefield run [variant]` only prints the chosen variant; it
  does not run a regression suite.
- There is no command that starts the block poller; it is used from Python
  with a fetcher you provide.
- `Chain` only holds and validates the chain's settings. Its factories,
  transform flags and bootstrapper are stored as given; nothing in this
  package calls them, and there is no node manager, console reader or block
  encoder here.