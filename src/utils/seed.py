"""Initial catalog and default admin account.

Seeding is idempotent: trees are matched by name, nodes by (tree, level,
title), and the admin account by username.
"""

import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from config import DEFAULT_ADMIN_EMAIL, DEFAULT_ADMIN_PASSWORD, DEFAULT_ADMIN_USERNAME
from models.skill_tree import SkillNodeModel, SkillTreeModel
from utils.user_manager import UserManager

logger = logging.getLogger(__name__)

SKILL_TREES: List[Dict] = [
    {"name": "Capture the Flag", "description": "Complete CTF challenges on various platforms", "category": "hands-on", "display_order": 1},
    {"name": "Cloud Specialty", "description": "Earn cloud computing certifications", "category": "certification", "display_order": 2},
    {"name": "Lab Man", "description": "Complete lab exercises and quizzes", "category": "lab-work", "display_order": 3},
    {"name": "Coding", "description": "Complete programming language courses", "category": "development", "display_order": 4},
    {"name": "Lock Picking", "description": "Physical security - lock picking exercises", "category": "physical", "display_order": 5},
    {"name": "Health Tracking", "description": "Track health factors throughout the semester", "category": "wellness", "display_order": 6},
    {"name": "AI Deception and Social Engineering", "description": "Learn about AI-powered social engineering", "category": "ai-security", "display_order": 7},
    {"name": "AI Model Forensics", "description": "AI incident response and forensics", "category": "ai-security", "display_order": 8},
]

_MODULE_WORK = "Complete module assignments"
_LAB_WORK = "File upload with screenshots and answers"
_LAB_DESCRIPTION = (
    "Answer all analysis questions and the key terms quiz. "
    "Take screenshots of the last step in every lab."
)
_CERT_PROOF = "File upload (certificate or official score report)."
_LOCK_PROOF = "File upload (images showing you picking the locks)"
_HEALTH_PROOF = "Weekly submissions with data tracking"

# (tree name, level, title, description, submission requirements, points)
SKILL_NODES: List[Tuple[str, int, str, str, str, int]] = [
    ("Capture the Flag", 1, "Metasploitable 3 CTF", "Find three (3) flags on a Metasploitable 3 machine.", "Upload screenshots in one Word document (or PDF)", 100),
    ("Capture the Flag", 2, "OverTheWire - Bandit", "Find two (2) flags on OverTheWire - Bandit.", "File upload (screenshots or a brief document showing your results).", 100),
    ("Capture the Flag", 3, "Hack The Box", "Complete two (2) live machines on Hack The Box (HTB) and capture the flags.", "File upload with screenshots showing proof of completion.", 150),
    ("Cloud Specialty", 1, "AWS Cloud Practitioner", "Upload proof of passing the AWS Certified Cloud Practitioner exam", _CERT_PROOF, 200),
    ("Cloud Specialty", 2, "Azure Fundamentals", "Upload proof of passing Microsoft Azure Fundamentals certification.", _CERT_PROOF, 200),
    ("Cloud Specialty", 3, "Google Cloud Digital Leader", "Upload proof of passing Google Cloud Digital Leader certification.", _CERT_PROOF, 200),
    ("Lab Man", 1, "Lab Exercises Set 1", _LAB_DESCRIPTION, _LAB_WORK, 100),
    ("Lab Man", 2, "Lab Exercises Set 2", _LAB_DESCRIPTION, _LAB_WORK, 100),
    ("Lab Man", 3, "Lab Exercises Set 3", _LAB_DESCRIPTION, _LAB_WORK, 100),
    ("Coding", 1, "First Programming Language", "Complete one (1) programming language course on Codecademy.", "Sign up using your chosen display name.", 150),
    ("Coding", 2, "Second Programming Language", "Complete two (2) programming language courses on Codecademy.", "Use your display name on the account. Completing more than two courses may count as extra credit.", 200),
    ("Lock Picking", 1, "Pick 3 Locks", "Pick three (3) locks.", _LOCK_PROOF, 75),
    ("Lock Picking", 2, "Pick 6 Locks", "Pick six (6) locks.", _LOCK_PROOF, 100),
    ("Lock Picking", 3, "Pick 9 Locks", "Pick nine (9) locks", _LOCK_PROOF, 125),
    ("Health Tracking", 1, "Track One Health Factor", "Track one (1) health factor over the course of the semester (e.g., Diet, Sleep, or Exercise).", _HEALTH_PROOF, 100),
    ("Health Tracking", 2, "Track Two Health Factors", "Track two (2) health factors over the course of the semester.", _HEALTH_PROOF, 150),
    ("Health Tracking", 3, "Track Three Health Factors", "Track three (3) health factors over the course of the semester.", _HEALTH_PROOF, 200),
    ("AI Deception and Social Engineering", 1, "Module 1: AI & Social Manipulation", "Module 1: AI & Social Manipulation", _MODULE_WORK, 100),
    ("AI Deception and Social Engineering", 2, "Module 2: Automated Phishing", "Module 2: Automated Phishing & Pretexting", _MODULE_WORK, 100),
    ("AI Deception and Social Engineering", 3, "Module 3: Deepfake Fabrication", "Module 3: Deepfake Fabrication and Vishing", _MODULE_WORK, 100),
    ("AI Deception and Social Engineering", 4, "Project: Human Defense", "Module 4: Project: Human Defense & Simulation", "Complete final project", 150),
    ("AI Model Forensics", 1, "Module 1: Foundation", "Module 1: Foundation of AI Incident Response", _MODULE_WORK, 100),
    ("AI Model Forensics", 2, "Module 2: Compromise Detection", "Module 2: Compromise Detection & Monitoring", _MODULE_WORK, 100),
    ("AI Model Forensics", 3, "Module 3: Model Theft", "Module 3: Model Theft and Watermarking", _MODULE_WORK, 100),
    ("AI Model Forensics", 4, "Project: Post-Incident", "Module 4: Project: Post-Incident Attribution", "Complete final project", 150),
]


def seed_catalog(db: Session) -> Tuple[int, int]:
    """Insert missing trees and nodes.

    Returns:
        (trees added, nodes added)
    """
    trees_by_name = {t.name: t for t in db.query(SkillTreeModel).all()}
    trees_added = 0
    for fields in SKILL_TREES:
        if fields["name"] in trees_by_name:
            continue
        tree = SkillTreeModel(**fields)
        db.add(tree)
        trees_by_name[fields["name"]] = tree
        trees_added += 1
    db.flush()

    existing_nodes = {
        (n.skill_tree_id, n.level, n.title) for n in db.query(SkillNodeModel).all()
    }
    nodes_added = 0
    for tree_name, level, title, description, requirements, points in SKILL_NODES:
        tree = trees_by_name[tree_name]
        if (tree.id, level, title) in existing_nodes:
            continue
        db.add(
            SkillNodeModel(
                skill_tree_id=tree.id,
                level=level,
                title=title,
                description=description,
                submission_requirements=requirements,
                points=points,
            )
        )
        nodes_added += 1
    db.commit()

    logger.info("Seeded %d skill trees and %d skill nodes", trees_added, nodes_added)
    return trees_added, nodes_added


def seed_admin(db: Session, user_manager: Optional[UserManager] = None) -> bool:
    """Create the default admin account if it does not exist.

    Returns:
        True if the account was created.
    """
    user_manager = user_manager or UserManager(db)
    if user_manager.get_user_by_username(DEFAULT_ADMIN_USERNAME):
        return False

    user_manager.create_user(
        username=DEFAULT_ADMIN_USERNAME,
        email=DEFAULT_ADMIN_EMAIL,
        password=DEFAULT_ADMIN_PASSWORD,
        role="admin",
    )
    logger.warning(
        "Default admin user created (username: %s). Change its password immediately.",
        DEFAULT_ADMIN_USERNAME,
    )
    return True
