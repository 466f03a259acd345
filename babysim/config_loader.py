import json
import os
import logging
from functools import lru_cache

from pydantic import ValidationError

from babysim.config_models import DevelopmentConfig, FamilyConfig, ScenarioConfig
from babysim.paths import CONFIG_DIR

###############################
### Imported to other files ###
###############################
# Toggle this to True if you want to log which configuration files were loaded
LOADED_INFO_FILES = False
###############################

logger = logging.getLogger(__name__)


class ConfigLoader:
    config_files = {
        'development': ('development.json', DevelopmentConfig),
        'family': ('family.json', FamilyConfig),
        'scenarios': ('scenarios.json', ScenarioConfig),
    }

    def __init__(self, config_folder=CONFIG_DIR):
        self.config_folder = config_folder
        self.config = {}
        self.tables = {}
        self.load_configs()
        self.validate_configs()

    def load_configs(self):
        for category, (filename, _) in self.config_files.items():
            file_path = os.path.join(self.config_folder, filename)
            if not os.path.exists(file_path):
                raise FileNotFoundError(f"Configuration file {filename} not found in {self.config_folder}.")
            with open(file_path, 'r', encoding='utf-8') as file:
                try:
                    self.config[category] = json.load(file)
                    if LOADED_INFO_FILES:
                        logger.info(f"Loaded configuration from {filename}.")
                except json.JSONDecodeError as e:
                    raise ValueError(f"Error parsing {filename}: {e}")

    def validate_configs(self):
        for category, (filename, model) in self.config_files.items():
            try:
                self.tables[category] = model.model_validate(self.config[category])
            except ValidationError as e:
                raise ValueError(f"Invalid {filename}: {e}")

        development = self.tables['development']
        scenarios = self.tables['scenarios']
        trait_ids = set(development.trait_ids)
        skill_ids = set(development.skill_catalog)

        # Cross-file references are warnings: unknown ids are skipped at runtime
        for trait_id in development.criticalPeriods:
            if trait_id not in trait_ids:
                logger.warning(f"Critical period defined for unknown trait '{trait_id}'.")
        for trait_id, related in development.traitInteractions.items():
            for other in [trait_id, *related]:
                if other not in trait_ids:
                    logger.warning(f"Trait interaction references unknown trait '{other}'.")
        for trait_id in scenarios.traitScenarios:
            if trait_id not in trait_ids:
                logger.warning(f"Trait scenario defined for unknown trait '{trait_id}'.")
        for skill_id in scenarios.skillScenarios:
            if skill_id not in skill_ids:
                logger.warning(f"Skill scenario defined for unknown skill '{skill_id}'.")
        for trigger in ('ADVANCED', 'STRUGGLING'):
            if scenarios.skillScenarios and trigger not in scenarios.skillOptions:
                raise ValueError(f"Missing skillOptions for '{trigger}' in scenarios configuration.")

    def get_development(self) -> DevelopmentConfig:
        return self.tables['development']

    def get_family(self) -> FamilyConfig:
        return self.tables['family']

    def get_scenarios(self) -> ScenarioConfig:
        return self.tables['scenarios']


@lru_cache(maxsize=1)
def get_default_config() -> ConfigLoader:
    """The packaged tables, loaded and validated once per process."""
    return ConfigLoader()
