"""
Example generating a world, populating it and saving the results.
"""

import sys
from pathlib import Path

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

from py_randlebrot.config import configure_logging
from py_randlebrot.core import BiomeMap, CivilizationGenerator, NoiseLayer, WorldDefinition
from py_randlebrot.core.visualization import save_layer_png
from py_randlebrot.persistence import save_world_by_name


def main(output_dir="civilization_demo"):
    configure_logging(log_format="console")
    output = Path(output_dir)

    world = WorldDefinition(name="Demo World", seed=1234, width=512, height=256)

    print(f"Generating {world.width}x{world.height} terrain for seed {world.seed}...")
    biome_map = BiomeMap.from_world(world)
    print(f"Land fraction: {biome_map.land_fraction():.1%}")

    result = CivilizationGenerator(world.seed).generate(biome_map, world)
    print(f"Settlements: {result.settlements_placed}")
    print(f"Factions: {result.factions_created}")
    print(f"Roads: {result.roads_built}")
    print(f"Trade routes: {result.trade_routes_created}")

    for layer in (NoiseLayer.BIOME, NoiseLayer.TEMPERATURE, NoiseLayer.TECTONIC, NoiseLayer.SUITABILITY):
        save_layer_png(biome_map, layer, output / f"{layer.name.lower()}.png")

    # Political map: biomes with territory and roads on top
    fig, ax = plt.subplots(figsize=(12, 6))
    ax.imshow(biome_map.to_layer_array(NoiseLayer.BIOME))
    if world.territory is not None:
        colors = {faction.id: faction.color for faction in world.factions}
        territory = np.frombuffer(world.territory.to_image(colors), dtype=np.uint8)
        ax.imshow(territory.reshape(world.height, world.width, 4))
    for road in world.roads:
        xs = [p.x for p in road.waypoints]
        ys = [p.y for p in road.waypoints]
        ax.plot(xs, ys, color=np.array(road.road_type.color) / 255.0, linewidth=road.road_type.width * 0.5)
    for city in world.cities:
        ax.scatter(city.position.x, city.position.y, s=30 if city.tier.value == "capital" else 8, c="black")
        if city.tier.value == "capital":
            ax.annotate(city.name, (city.position.x, city.position.y), fontsize=7, xytext=(3, 3),
                        textcoords="offset points")
    ax.set_title(f"{world.name} (seed {world.seed})")
    ax.set_axis_off()
    plt.tight_layout()
    plt.savefig(output / "political.png", dpi=150)
    print(f"\nMaps saved to {output}/")

    print("\nFactions:")
    for faction in world.factions:
        capital = world.get_city(faction.capital_id)
        area = world.territory.count_by_faction().get(faction.id, 0) if world.territory else 0
        print(f"  {faction.name}: capital {capital.name}, {faction.settlement_count} settlements, {area} cells")

    path = save_world_by_name(world, output / "worlds")
    print(f"\nWorld saved to {path}")


if __name__ == "__main__":
    main(*sys.argv[1:])
