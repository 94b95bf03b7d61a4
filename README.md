# llclauncher

A launcher for Limbus Company. It installs the LLC Simplified Chinese
localization and keeps it up to date, then starts the game through Steam.

## Installation

```
pip install llclauncher
```

## Usage

```
llc-launcher
llc-launcher --version
```

Arguments that the launcher does not recognise are handed on unchanged to the
tool copy that it starts.

## What a run does

`llc-launcher` (`llclauncher.cli.main`) creates the user cache, config and data
directories (from `platformdirs`). It loads the configuration and sets up
logging. The next step depends on where the running executable lives.

**As launcher** (the executable is outside the cache directory),
`llclauncher.self_update.run` does the following:

1. It asks each configured npm registry for the package
   `@lightsing/llc-launcher-rs-win32` on Windows, or
   `@lightsing/llc-launcher-rs-linux` elsewhere. The first good answer is
   used.
2. If its own version (`0.1.15`) is the same as or newer than the `latest`
   dist-tag, it copies itself into the cache directory. If not, it downloads
   the tarball and unpacks the file named `llc-launcher-rs` (`.exe` on
   Windows) into the cache directory.
3. It starts that copy with the environment variable `LLC_LAUNCHER_PATH` set
   to its own path, and then exits.

**As tool** (the executable is inside the cache directory),
`llclauncher.installer.run` does the following:

1. It finds the Limbus Company folder (Steam app 1973530) in the Steam
   libraries.
2. It reads the installed version from
   `LimbusCompany_Data/Lang/LLC_zh-CN/Info/version.json`.
3. It gets the newest version from two sources at once: the latest GitHub
   release tag and the ZeroAsso API. It takes whichever answers first. A
   GitHub failure is ignored, but the API's answer is final.
4. If the installed version is older, it does the following:
   - removes everything in `LLC_zh-CN` except `Font/`,
   - downloads `LimbusLocalize_<version>.7z`,
   - checks the archive's SHA-256 against the published hash,
   - extracts the archive,
   - installs `LLCCN-Font.7z` if `Font/Context/ChineseFont.ttf` is missing.
5. It starts the game with `steam://rungameid/1973530`.
6. It copies itself over the file named in `LLC_LAUNCHER_PATH`.

When a step fails, the error is logged. On Windows it is also shown in a
message box. If the launcher cannot initialise, it exits with status -1. At
the end of a run both configuration files are written back.

## Configuration

Both files live in the user configuration directory. A file that is missing is
created with default values.

`config.toml` (`llclauncher.launcher_config.LauncherConfig`) holds these
settings:

- `uuid`: an instance id. A new one is generated if it is missing.
- `log_level`: one of `ERROR`, `WARN`, `INFO`, `DEBUG`, `TRACE`, or a number
  from 1 to 5. This field is required.
- `telemetry`: `true` or `false`. The default is `true`.
- `npm_registries`: the registries used for self-update. The defaults are
  `https://registry.npmmirror.com` and `https://registry.npmjs.org`.

`llc_config.toml` (`llclauncher.llc_config.LLCConfig`) holds these settings:

- `[settings]` selects a `download-node` and an `api-node` by name.
- `[github]` gives the `repo`, the `owner` and the `api` base URL.
- Each `[[download-node]]` has a `name` and an `endpoint`. The endpoint is a
  Jinja template that contains `{{ file_name }}`. An endpoint that is not a
  valid template is skipped.
- Each `[[api-node]]` has a `name` and an `endpoint` URL.

If either list is empty, the built-in nodes are used instead. If the selected
node is not in its list, the first node by name is selected.

## Logging

Logs are written to the `logs` folder in the user data directory, in the file
`llc-launcher.log`, and to standard error. The file is rotated at midnight, and
ten files are kept in total. If logging cannot be set up, the launcher carries
on without it.

## Library use

```python
from llclauncher import llc_config, zeroasso, steam, sevenzip

config = llc_config.default_llc_config()
print(config.download_url_for("LimbusLocalize_2025070503.7z"))
print(config.fallback_download_nodes("LimbusLocalize_2025070503.7z"))
print(zeroasso.get_version(config))

root = steam.get_steam_root()
print(steam.find_game_path_for_app(root, 1973530))

data = zeroasso.download_file(config, "LLCCN-Font.7z", zeroasso.get_hash(config).font_hash)
sevenzip.extract(data, "out")
```

Other modules:

- `llclauncher.vdf.loads` parses Valve KeyValues text.
- `llclauncher.http.get_json` queries several URLs at once and returns the
  first good answer.
- `llclauncher.game` finds and starts Limbus Company.

## Limitations

- The `telemetry` setting is read and saved, but no log reports are sent
  anywhere.
- Message boxes appear only on Windows, through tkinter. On other systems
  nothing is shown.
- `sevenzip.extract` handles stored, LZMA and LZMA2 folders only. It does not
  handle chained filters such as BCJ, encrypted archives or external header
  data.
- Steam is found through the registry on Windows. Elsewhere it is found under
  `$HOME` in `.steam/steam`, `.local/share/Steam` or the Flatpak location.

## Development

```
pip install -e ".[test]"
pytest
```