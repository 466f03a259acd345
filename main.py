import argparse
import logging
import statistics
from collections import Counter, defaultdict

from babysim.character import development_score, traits_by_category
from babysim.config_loader import ConfigLoader
from babysim.config_models import DEFAULT_GAME_STYLE, GAME_STYLES
from babysim.family import BirthCircumstance, CrisisSeverity, CrisisType
from babysim.game import DevelopmentEngine
from babysim.rng import SeededRandom

# Toggle this to True if you want to collect & print stats of the children at the end of a run
STATS_ENABLED = True

# Toggle this to True if you want every scenario title logged as it is played
SCENARIO_INFO_ENABLED = False

# Chance per year that the family runs into a crisis during autoplay
CRISIS_CHANCE = 0.1

# Age at which a child is introduced to a peer group
PEER_INTRODUCTION_AGE = 3

CHILD_NAMES = {
    "female": ["Emma", "Olivia", "Ava", "Mia", "Zoe", "Lily"],
    "male": ["Liam", "Noah", "Ethan", "Lucas", "Mason", "Leo"],
}


def setup_logging():
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler()
        ]
    )


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="BabySim autoplay: raise a family with random decisions")
    parser.add_argument("--seed", type=int, default=None,
                        help="Seed for every random draw (default: unseeded)")
    parser.add_argument("--years", type=int, default=12,
                        help="Number of years to play (default: 12)")
    parser.add_argument("--children", type=int, default=2,
                        help="Total number of children the family ends up with (default: 2)")
    parser.add_argument("--style", choices=GAME_STYLES, default=DEFAULT_GAME_STYLE,
                        help="Narrative style of the scenarios")
    parser.add_argument("--config", default=None,
                        help="Folder holding the JSON tables (default: packaged config)")
    return parser.parse_args(argv)


def run_main(argv=None):
    setup_logging()
    args = parse_args(argv)
    try:
        config_loader = ConfigLoader(args.config) if args.config else ConfigLoader()
    except (FileNotFoundError, ValueError) as e:
        logging.error(f"Failed to load configuration: {e}")
        return None

    engine = DevelopmentEngine(config_loader)
    rng = SeededRandom(args.seed)

    gender = rng.choice(list(CHILD_NAMES))
    state = engine.new_game(rng.choice(CHILD_NAMES[gender]), gender, rng, game_style=args.style)

    # Stagger later arrivals across the first half of the run
    birth_years = sorted({
        1 + int(rng.random() * max(1, args.years // 2))
        for _ in range(max(0, args.children - 1))
    })
    decisions = 0
    sources = Counter()
    crises = []

    for year in range(args.years):
        while birth_years and birth_years[0] <= year:
            birth_years.pop(0)
            gender = rng.choice(list(CHILD_NAMES))
            circumstances = rng.choice(list(BirthCircumstance))
            state = engine.add_child(state, rng.choice(CHILD_NAMES[gender]), gender, rng, circumstances)

        for child_id, child in list(state.children.items()):
            if child.age >= PEER_INTRODUCTION_AGE and child_id not in state.peers:
                state = engine.introduce_peers(state, rng, child_id)

            scenario = engine.next_scenario(state, rng, child_id)
            option = rng.choice(scenario.options)
            if SCENARIO_INFO_ENABLED:
                logging.info(f"[age {child.age}] {child.name}: {scenario.title} -> {option.label}")
            state, result = engine.apply_decision(state, option, child_id)
            sources[scenario.source.value] += 1
            decisions += 1
            for milestone_id in result.achieved_milestones:
                logging.info(f"{child.name} reached '{milestone_id}' after a decision.")

        if rng.chance(CRISIS_CHANCE):
            state, report = engine.apply_crisis(
                state, rng.choice(list(CrisisType)), rng.choice(list(CrisisSeverity))
            )
            crises.append(report)

        state, _ = engine.advance_year(state, rng)

    overview = engine.overview(state)
    logging.info(
        f"Finished after {args.years} years: {overview.child_count} children, "
        f"stress {overview.stress_level}, cohesion {overview.cohesion_level}, "
        f"happiness {state.happiness:.0f}, finances {state.finances:.0f}."
    )

    # Gather Statistics
    if STATS_ENABLED:
        scores = {child_id: development_score(child) for child_id, child in state.children.items()}

        print("\n--- Children ---")
        print(f"{'Child':<20} {'Name':<8} {'Age':>4} {'Score':>7} {'Skills':>7} {'Milestones':>11}")
        for child_id, child in state.children.items():
            achieved = sum(1 for milestone in child.milestones if milestone.achieved)
            print(
                f"{child_id:<20} "
                f"{child.name:<8} "
                f"{child.age:>4} "
                f"{scores[child_id]:7.2f} "
                f"{len(child.skills):>7} "
                f"{achieved:>5}/{len(child.milestones):<5}"
            )

        values = sorted(scores.values())
        if len(values) >= 2:
            # statistics.quantiles returns [Q1, Q2, Q3] for n=4
            q1, med, q3 = statistics.quantiles(values, n=4, method="inclusive")
            print(f"Development score  min/p25/median/p75/max: "
                  f"{values[0]:.1f}/{q1:.1f}/{med:.1f}/{q3:.1f}/{values[-1]:.1f}")
        else:
            print(f"Development score: {values[0]:.1f}")

        category_values = defaultdict(list)
        for child in state.children.values():
            for category, traits in traits_by_category(child).items():
                category_values[category.value].extend(trait.value for trait in traits)
        print("\n--- Average trait value by category ---")
        for category in sorted(category_values):
            print(f"{category:<14} {statistics.mean(category_values[category]):6.1f}")

        print("\n--- Scenarios played by source ---")
        for source, count in sources.most_common():
            print(f"{source:<10} {count:>4}  ({count / decisions * 100:.1f}%)")

        if crises:
            impacts = [report.actual_impact for report in crises]
            print(f"\nCrises: {len(crises)}  mean impact {statistics.mean(impacts):.1f}")

        if state.sibling_relationships:
            bonds = [relationship.bond for relationship in state.sibling_relationships]
            print(f"Sibling bond  mean {statistics.mean(bonds):.1f}  "
                  f"strongest {overview.strongest_bond}  weakest {overview.weakest_bond}")

    return state


if __name__ == "__main__":
    run_main()
