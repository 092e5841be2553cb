"""
Tests for YAML order files.
"""

import yaml

from diplomacy_engine.core.game_state import create_starting_state
from diplomacy_engine.core.orders import Build, Convoy, Disband, Hold, Move, Retreat, SupportMove
from diplomacy_engine.io.yaml_orders import OrderWriter, YAMLOrderLoader


def write_yaml(tmp_path, data, name="orders.yaml"):
    path = tmp_path / name
    path.write_text(yaml.dump(data, sort_keys=False))
    return str(path)


def test_compact_and_structured_orders(tmp_path, game_map):
    state = create_starting_state(game_map)
    path = write_yaml(tmp_path, {
        "phase": "Phase 1 move",
        "orders": [
            {"player": "ENGLAND", "order": "LON_C M NTH_C"},
            {"player": "france", "part": "par_l", "action": "m", "destination": "BUR_L"},
            {"player": "FRANCE", "part": "BRE_C", "action": "support", "supports": "PAR_L",
             "destination": "PIC_L"},
            {"player": "GERMANY", "part": "KIE_C"},
            {"player": "ENGLAND", "part": "EDI_C", "action": "convoy", "convoys": "YOR_L",
             "destination": "BEL_L"},
        ],
    })

    loader = YAMLOrderLoader(state)
    orders = loader.load_orders(path)

    assert orders == [
        Move("ENGLAND", "LON_C", "NTH_C"),
        Move("FRANCE", "PAR_L", "BUR_L"),
        SupportMove("FRANCE", "BRE_C", "PIC_L", "PAR_L"),
        Hold("GERMANY", "KIE_C"),
        Convoy("ENGLAND", "EDI_C", "BEL_L", "YOR_L"),
    ]
    assert loader.get_warnings() == []
    assert "Corrected player 'france' to 'FRANCE'" in loader.get_corrections()
    assert "Corrected 'par_l' to 'PAR_L'" in loader.get_corrections()


def test_bad_entries_become_warnings(tmp_path, game_map):
    state = create_starting_state(game_map)
    path = write_yaml(tmp_path, {
        "phase": "Phase 3 move",
        "orders": [
            {"player": "ENGLAND", "part": "XXX_L"},
            {"player": "ENGLAND", "order": "LON_C Q NTH_C"},
            {"part": "LON_C"},
        ],
    })

    loader = YAMLOrderLoader(state)
    assert loader.load_orders(path) == []
    warnings = loader.get_warnings()
    assert len(warnings) == 4
    assert warnings[0] == "File is for 'Phase 3 move', current phase is 'Phase 1 move'"


def test_retreat_build_and_disband_sections(tmp_path, game_map):
    state = create_starting_state(game_map)
    path = write_yaml(tmp_path, {
        "retreats": [
            {"player": "FRANCE", "part": "BUR_L", "destination": "PAR_L"},
            {"player": "GERMANY", "part": "RUH_L", "action": "d"},
        ],
        "builds": [{"player": "ENGLAND", "part": "LON_C"}],
        "disbands": [{"player": "GERMANY", "location": "KIE_C"}],
    })

    orders = YAMLOrderLoader(state).load_orders(path)

    assert orders == [
        Retreat("FRANCE", "BUR_L", "PAR_L"),
        Disband("GERMANY", "RUH_L"),
        Build("ENGLAND", "LON_C"),
        Disband("GERMANY", "KIE_C"),
    ]


def test_empty_file(tmp_path, game_map):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert YAMLOrderLoader(create_starting_state(game_map)).load_orders(str(path)) == []


def test_written_file_loads_back(tmp_path, game_map):
    state = create_starting_state(game_map)
    orders = [
        Move("ENGLAND", "LON_C", "NTH_C"),
        SupportMove("FRANCE", "BRE_C", "PIC_L", "PAR_L"),
        Build("GERMANY", "KIE_C"),
    ]
    path = str(tmp_path / "written.yaml")
    OrderWriter.write(orders, "Phase 1 move", path)

    with open(path) as f:
        data = yaml.safe_load(f)
    assert data["phase"] == "Phase 1 move"
    assert data["orders"][0] == {"player": "ENGLAND", "order": "LON_C M NTH_C"}

    assert YAMLOrderLoader(state).load_orders(path) == orders


def test_orders_from_loaded_data(game_map):
    loader = YAMLOrderLoader(create_starting_state(game_map))
    orders = loader.orders_from_data({
        "phase": "Phase 2 move",
        "orders": [{"player": "ENGLAND", "order": "LON_C H"}],
    })
    assert orders == [Hold("ENGLAND", "LON_C")]
    assert loader.get_warnings() == ["File is for 'Phase 2 move', current phase is 'Phase 1 move'"]
