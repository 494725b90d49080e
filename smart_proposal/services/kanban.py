from __future__ import annotations

import copy
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from smart_proposal.logging_config import get_logger
from smart_proposal.services import pollinations

logger = get_logger("kanban")

TASKS_PIPELINE_ID = "tasks-pipeline"

TASK_SYSTEM_PROMPT = (
    "You are an assistant helping plan AI implementation for marketing agencies. Generate 3-5 actionable "
    "tasks based on the user's goal. Respond ONLY with a valid JSON object containing a single key \"tasks\" "
    "which holds an array of task objects. Each task object must have the following keys: 'content' (string, "
    "the task description), 'phase' (string, e.g., 'To Do', 'In Progress', 'Done' based on the Task "
    "Management pipeline stages), and 'priority' (string, e.g., 'High', 'Medium', 'Low'). Do not include any "
    "other text, explanations, markdown formatting, or code block fences before or after the JSON object. "
    'Example format: {"tasks": [{"content": "Task 1", "phase": "To Do", "priority": "Medium"}]}'
)


@dataclass
class Task:
    id: str
    content: str
    phase: str
    priority: str
    pipelineId: str


@dataclass
class Pipeline:
    id: str
    name: str
    type: str
    stages: List[str] = field(default_factory=list)


INITIAL_PIPELINES = [
    Pipeline("tasks-pipeline", "Task Management", "tasks", ["To Do", "In Progress", "Done"]),
    Pipeline("leads-pipeline", "Sales Leads [Planned]", "leads", ["New Lead", "Contacted", "Qualified", "Closed"]),
]


def _seed_tasks() -> Dict[str, Dict[str, List[Task]]]:
    def task(task_id: str, content: str, phase: str, priority: str, pipeline_id: str = TASKS_PIPELINE_ID) -> Task:
        return Task(task_id, content, phase, priority, pipeline_id)

    return {
        "tasks-pipeline": {
            "To Do": [
                task("task-1", "Audit current tech stack", "To Do", "High"),
                task("task-2", "Define initial KPIs", "To Do", "Medium"),
                task("task-3", "Document existing processes", "To Do", "Medium"),
            ],
            "In Progress": [
                task("task-4", "Map customer journey", "In Progress", "High"),
                task("task-5", "Evaluate AI vendors", "In Progress", "Medium"),
            ],
            "Done": [
                task("task-6", "Identify key processes", "Done", "High"),
                task("task-7", "Initial team training", "Done", "Medium"),
            ],
        },
        "leads-pipeline": {
            "New Lead": [
                task("lead-1", "Contact potential client A", "New Lead", "High", "leads-pipeline"),
                task("lead-2", "Research company B", "New Lead", "Medium", "leads-pipeline"),
            ],
            "Contacted": [],
            "Qualified": [],
            "Closed": [],
        },
    }


def array_move(items: List[Any], old_index: int, new_index: int) -> List[Any]:
    moved = list(items)
    moved.insert(new_index, moved.pop(old_index))
    return moved


class KanbanBoard:
    """In-memory pipelines and their tasks, keyed ``pipelineId -> stage -> [Task]``."""

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        self.pipelines: List[Pipeline] = copy.deepcopy(INITIAL_PIPELINES)
        self.tasks: Dict[str, Dict[str, List[Task]]] = _seed_tasks()
        self.active_pipeline_id = self.pipelines[0].id

    @property
    def active_pipeline(self) -> Optional[Pipeline]:
        return next((p for p in self.pipelines if p.id == self.active_pipeline_id), None)

    def find_container(self, item_id: str) -> Optional[Tuple[str, str]]:
        for pipeline_id, stages in self.tasks.items():
            for stage, stage_tasks in stages.items():
                if any(task.id == item_id for task in stage_tasks):
                    return pipeline_id, stage
        return None

    def _take(self, location: Tuple[str, str], task_id: str) -> Optional[Task]:
        pipeline_id, stage = location
        stage_tasks = self.tasks[pipeline_id][stage]
        task = next((t for t in stage_tasks if t.id == task_id), None)
        if task is not None:
            self.tasks[pipeline_id][stage] = [t for t in stage_tasks if t.id != task_id]
        return task

    def _drop_on_stage(self, active_location: Tuple[str, str], active_id: str, stage: str) -> bool:
        task = self._take(active_location, active_id)
        if task is None:
            return False
        pipeline_id = active_location[0]
        task.phase = stage
        self.tasks[pipeline_id].setdefault(stage, []).append(task)
        return True

    def _resolve(self, active_id: str, over_id: Optional[str]):
        pipeline = self.active_pipeline
        if not over_id or not pipeline or active_id == over_id:
            return None
        active_location = self.find_container(active_id)
        if not active_location:
            return None
        over_is_stage = over_id in pipeline.stages and active_location[0] == self.active_pipeline_id
        return active_location, self.find_container(over_id), over_is_stage

    def drag_over(self, active_id: str, over_id: Optional[str]) -> bool:
        resolved = self._resolve(active_id, over_id)
        if resolved is None:
            return False
        active_location, over_location, over_is_stage = resolved
        if over_is_stage:
            return self._drop_on_stage(active_location, active_id, over_id)
        if not over_location:
            return False

        task = self._take(active_location, active_id)
        if task is None:
            return False
        pipeline_id, stage = over_location
        items = self.tasks[pipeline_id][stage]
        over_index = next((i for i, item in enumerate(items) if item.id == over_id), len(items))
        task.phase, task.pipelineId = stage, pipeline_id
        items.insert(over_index, task)
        return True

    def drag_end(self, active_id: str, over_id: Optional[str]) -> bool:
        resolved = self._resolve(active_id, over_id)
        if resolved is None:
            return False
        active_location, over_location, over_is_stage = resolved
        if over_is_stage:
            return self._drop_on_stage(active_location, active_id, over_id)
        if not over_location:
            return False

        pipeline_id, stage = over_location
        if active_location == over_location:
            items = self.tasks[pipeline_id][stage]
            old_index = next(i for i, item in enumerate(items) if item.id == active_id)
            new_index = next(i for i, item in enumerate(items) if item.id == over_id)
            self.tasks[pipeline_id][stage] = array_move(items, old_index, new_index)
            return True

        task = self._take(active_location, active_id)
        if task is None:
            return False
        items = self.tasks[pipeline_id][stage]
        new_index = next(i for i, item in enumerate(items) if item.id == over_id)
        task.phase, task.pipelineId = stage, pipeline_id
        items.insert(new_index, task)
        return True

    def add_pipeline(self, pipeline: Pipeline) -> Pipeline:
        if any(existing.id == pipeline.id for existing in self.pipelines):
            raise ValueError(f"Pipeline {pipeline.id} already exists")
        self.pipelines.append(pipeline)
        self.tasks[pipeline.id] = {stage: [] for stage in pipeline.stages}
        return pipeline

    def set_active_pipeline(self, pipeline_id: str) -> Pipeline:
        pipeline = next((p for p in self.pipelines if p.id == pipeline_id), None)
        if pipeline is None:
            raise KeyError(pipeline_id)
        self.active_pipeline_id = pipeline_id
        return pipeline

    async def generate_tasks(self, goal: str) -> List[Task]:
        pipeline = self.active_pipeline
        if self.active_pipeline_id != TASKS_PIPELINE_ID or pipeline is None:
            raise ValueError("AI Task Generation is currently only available for the 'Task Management' pipeline.")
        goal = (goal or "").strip()
        if not goal:
            raise ValueError("Please enter a goal or phase to generate tasks.")

        messages = [
            {"role": "system", "content": TASK_SYSTEM_PROMPT},
            {
                "role": "user",
                "content": f"User Goal: {goal}. Generate the tasks for the Task Management pipeline in the specified JSON format.",
            },
        ]
        parsed = await pollinations.chat_json(messages, model="openai")
        generated = parsed.get("tasks") if isinstance(parsed, dict) else None
        if not isinstance(generated, list):
            raise ValueError("AI response structure is incorrect (missing 'tasks' array).")

        new_tasks = [
            Task(str(uuid.uuid4()), item["content"], item["phase"], item["priority"], self.active_pipeline_id)
            for item in generated
            if isinstance(item, dict)
            and isinstance(item.get("content"), str)
            and item["content"].strip()
            and item.get("phase") in pipeline.stages
            and isinstance(item.get("priority"), str)
            and item["priority"].strip()
        ]
        if not new_tasks:
            phases = ", ".join(str(item.get("phase")) for item in generated if isinstance(item, dict))
            raise ValueError(
                f"AI generated tasks, but phases didn't match the '{pipeline.name}' pipeline stages. "
                f"AI phases: [{phases}]. Expected stages: [{', '.join(pipeline.stages)}]."
            )

        stages = self.tasks[self.active_pipeline_id]
        for task in new_tasks:
            stages[task.phase] = [task, *stages.get(task.phase, [])]
        logger.info("Added %s generated tasks to %s", len(new_tasks), self.active_pipeline_id)
        return new_tasks

    def snapshot(self) -> Dict[str, Any]:
        return {
            "pipelines": [asdict(pipeline) for pipeline in self.pipelines],
            "activePipelineId": self.active_pipeline_id,
            "tasks": {
                pipeline_id: {stage: [asdict(task) for task in stage_tasks] for stage, stage_tasks in stages.items()}
                for pipeline_id, stages in self.tasks.items()
            },
        }


board = KanbanBoard()
