"""
Wire-format models for planning requests and responses.

Request:  { features, resources, nbWeeks, hoursPerWeek, previousSolution? }
Response: { jobs: [ { feature, resource, beginHour, endHour, frozen } ], status, score }

Translation helpers convert between these models and the core entities.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .entities import (
    Employee, Feature, PlannedFeature, PriorityLevel, Problem, Skill, Solution,
)


class SkillModel(BaseModel):
    """A skill, identified by its name"""
    name: str = Field(description="Skill identifier")


class PriorityModel(BaseModel):
    """Feature priority; level 1 is the most important, unknown levels count as 5"""
    level: int = Field(default=3, description="Priority level from 1 (highest) to 5 (lowest)")


class FeatureRef(BaseModel):
    """Reference to another feature; only the name is read"""
    name: str


class FeatureModel(BaseModel):
    """A feature to plan"""
    name: str = Field(description="Unique feature name")
    duration: float = Field(gt=0, description="Hours of work")
    priority: PriorityModel = Field(default_factory=PriorityModel)
    required_skills: List[SkillModel] = Field(default_factory=list, description="Skills the employee must have")
    depends_on: List[FeatureRef] = Field(default_factory=list, description="Features that must finish first")


class ResourceModel(BaseModel):
    """An employee"""
    name: str = Field(description="Unique employee name")
    availability: float = Field(ge=0, description="Hours available within the horizon")
    skills: List[SkillModel] = Field(default_factory=list)


class PlannedFeatureModel(BaseModel):
    """One job of a planning solution"""
    model_config = ConfigDict(populate_by_name=True)

    feature: FeatureModel
    resource: ResourceModel
    begin_hour: float = Field(alias="beginHour", ge=0)
    end_hour: float = Field(alias="endHour", ge=0)
    frozen: bool = False


class PlanningSolutionModel(BaseModel):
    """A planning solution: the jobs plus how the search ended"""
    jobs: List[PlannedFeatureModel] = Field(default_factory=list)
    status: Optional[str] = Field(default=None, description="optimal | feasible | incomplete")
    score: Optional[str] = Field(default=None, description="hard/medium/soft score")


class NextReleaseProblemModel(BaseModel):
    """A planning request; `previousSolution` turns it into a replan"""
    model_config = ConfigDict(populate_by_name=True)

    features: List[FeatureModel] = Field(default_factory=list)
    resources: List[ResourceModel] = Field(default_factory=list)
    nb_weeks: int = Field(default=3, alias="nbWeeks", ge=1)
    hours_per_week: float = Field(default=40.0, alias="hoursPerWeek", gt=0)
    previous_solution: Optional[PlanningSolutionModel] = Field(default=None, alias="previousSolution")


# Wire -> entities

def skills_to_entities(skills: List[SkillModel]) -> List[Skill]:
    return [Skill(s.name) for s in skills]


def resource_to_employee(resource: ResourceModel) -> Employee:
    return Employee(resource.name, resource.availability, skills_to_entities(resource.skills))


def feature_to_entity(feature: FeatureModel) -> Feature:
    return Feature(
        name=feature.name,
        duration=feature.duration,
        priority=PriorityLevel.from_level(feature.priority.level),
        required_skills=skills_to_entities(feature.required_skills),
        previous_features=tuple(f.name for f in feature.depends_on),
    )


def to_problem(request: NextReleaseProblemModel) -> Problem:
    """Build the core problem. Raises UnknownFeatureError on dangling dependencies."""
    return Problem(
        features=[feature_to_entity(f) for f in request.features],
        employees=[resource_to_employee(r) for r in request.resources],
        nb_weeks=request.nb_weeks,
        hours_per_week=request.hours_per_week,
    )


def to_prior_solution(model: PlanningSolutionModel, problem: Problem) -> Solution:
    """Rebuild a prior solution exactly as it was sent, attached to the new problem."""
    planned = []
    for job in model.jobs:
        planned.append(PlannedFeature(
            feature=feature_to_entity(job.feature),
            employee=resource_to_employee(job.resource),
            begin_hour=job.begin_hour,
            end_hour=job.end_hour,
            frozen=job.frozen,
        ))
    return Solution(problem=problem, planned_features=planned)


# Entities -> wire

def skills_to_models(skills) -> List[SkillModel]:
    return [SkillModel(name=s.name) for s in sorted(skills, key=lambda s: s.name)]


def employee_to_resource(employee: Employee) -> ResourceModel:
    return ResourceModel(name=employee.name, availability=employee.availability,
                         skills=skills_to_models(employee.skills))


def feature_to_model(feature: Feature) -> FeatureModel:
    return FeatureModel(
        name=feature.name,
        duration=feature.duration,
        priority=PriorityModel(level=int(feature.priority)),
        required_skills=skills_to_models(feature.required_skills),
        depends_on=[FeatureRef(name=name) for name in feature.previous_features],
    )


def from_solution(solution: Solution) -> PlanningSolutionModel:
    jobs = [
        PlannedFeatureModel(
            feature=feature_to_model(pf.feature),
            resource=employee_to_resource(pf.employee),
            begin_hour=pf.begin_hour,
            end_hour=pf.end_hour,
            frozen=pf.frozen,
        )
        for pf in solution.planned_features
    ]
    return PlanningSolutionModel(
        jobs=jobs,
        status=solution.status.value if solution.status else None,
        score=str(solution.score) if solution.score else None,
    )
