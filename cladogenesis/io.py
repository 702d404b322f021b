import json
import xml.etree.ElementTree as ET
from typing import IO, Optional

from cladogenesis.species_tree import SpeciesTree


def write_newick(tree: SpeciesTree, path: str, date: Optional[int] = None):
    with open(path, mode="w") as f:
        f.write(tree.render(date) + "\n")


def dump_json(tree: SpeciesTree, f: IO[str], date: Optional[int] = None):
    now = date if date is not None else tree.current_date
    json.dump(tree.root.to_dict(now), f, indent=4)


def write_json(tree: SpeciesTree, path: str, date: Optional[int] = None):
    with open(path, mode="w") as f:
        dump_json(tree, f, date)


def write_species_records(tree: SpeciesTree, path: str, date: int):
    """Write the records of all extant species as one XML document."""
    root = ET.Element("extant", {"date": str(date)})
    for record in tree.species_records(date):
        root.append(ET.fromstring(record))
    ET.ElementTree(root).write(path, encoding="utf-8", xml_declaration=True)
