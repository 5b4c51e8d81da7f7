"""Tests for the module listing."""

# Third-Party
import pytest

# First-Party
from fixture_loader.errors import FixtureError, ParseError
from fixture_loader.modules import Module, load_modules

MANIFEST = """
modules:
  - name: axelor-core
    version: "1.1"
    installedVersion: "1.0"
    installed: true
  - name: axelor-contact
    version: "1.0"
    installedVersion: "1.0"
    installed: true
    depends: [axelor-core]
  - name: axelor-sale
    version: "2.0"
    depends: [axelor-contact, axelor-core]
"""


def test_upgradable_when_installed_version_differs():
    module = Module("axelor-core", version="1.1", installed_version="1.0", installed=True)

    assert module.is_upgradable


def test_not_upgradable_when_versions_match_or_not_installed():
    assert not Module("a", version="1.0", installed_version="1.0", installed=True).is_upgradable
    assert not Module("b", version="2.0", installed_version="1.0").is_upgradable


def test_depends_on_adds_each_module_once():
    sale = Module("axelor-sale")
    core = Module("axelor-core")

    sale.depends_on(core)
    sale.depends_on(Module("axelor-core"))

    assert sale.depends == [core]


def test_equality_is_by_name():
    assert Module("axelor-core", version="1") == Module("axelor-core", version="2")
    assert len({Module("a"), Module("a"), Module("b")}) == 2


def test_pprint_renders_dependency_tree():
    sale, contact, core = Module("sale"), Module("contact"), Module("core")
    contact.depends_on(core)
    sale.depends_on(contact)
    sale.depends_on(core)

    assert sale.pprint() == "sale\n  -> contact\n    -> core\n  -> core\n"


def test_has_entity_matches_models_package():
    module = Module("axelor-contact")
    entity = type("Contact", (), {"__module__": "app.contact.models"})
    other = type("Invoice", (), {"__module__": "app.sale.db.invoice"})

    assert module.has_entity(entity)
    assert not module.has_entity(other)


def test_load_modules_wires_dependencies(tmp_path):
    path = tmp_path / "modules.yml"
    path.write_text(MANIFEST, encoding="utf-8")

    modules = load_modules(path)

    assert list(modules) == ["axelor-core", "axelor-contact", "axelor-sale"]
    assert modules["axelor-sale"].depends == [modules["axelor-contact"], modules["axelor-core"]]
    assert modules["axelor-core"].is_upgradable
    assert not modules["axelor-contact"].is_upgradable


def test_unknown_dependency_is_rejected(tmp_path):
    path = tmp_path / "modules.yml"
    path.write_text("modules:\n  - name: a\n    depends: [missing]\n", encoding="utf-8")

    with pytest.raises(FixtureError, match="missing"):
        load_modules(path)


def test_invalid_manifest_is_a_parse_error(tmp_path):
    path = tmp_path / "modules.yml"
    path.write_text("modules:\n  - version: '1.0'\n", encoding="utf-8")

    with pytest.raises(ParseError):
        load_modules(path)
