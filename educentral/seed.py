"""
Sample data for development databases.

Creates a demo student and an admin, one published test covering every
question type, two learning modules, three quiz topics with nine quizzes
and the badge catalogue. Seeding is skipped when any user already exists.
"""

from typing import Any, Dict, List

from educentral.auth.password import encode_password
from educentral.common.logger import app_logger
from educentral.config import get_settings
from educentral.database.base import utcnow
from educentral.storage.repository import DatabaseStorage
from educentral.storage.schemas import (
    BadgeCreate, LearningModuleCreate, LessonCreate, QuestionCreate, QuizCreate,
    QuizQuestionCreate, TestCreate, TopicCreate, UserCreate,
)

logger = app_logger.getChild("seed")

SAMPLE_TEST = {
    "title": "JavaScript Fundamentals Assessment",
    "description": "Test your knowledge of JavaScript basics including variables, functions, and control structures.",
    "subject": "programming",
    "duration": 30,
    "difficulty": "intermediate",
    "is_published": True,
}

SAMPLE_QUESTIONS = [
    {
        "type": "mcq",
        "question": "What is the correct way to declare a variable in JavaScript?",
        "options": ["var myVar;", "variable myVar;", "v myVar;", "declare myVar;"],
        "correct_answer": "var myVar;",
        "points": 10,
        "order_index": 1,
    },
    {
        "type": "video",
        "question": "Record a 2-minute video explaining the concept of JavaScript closures with examples.",
        "points": 30,
        "order_index": 2,
    },
    {
        "type": "photo",
        "question": "Draw and photograph a diagram showing the JavaScript event loop process.",
        "points": 25,
        "order_index": 3,
    },
    {
        "type": "text",
        "question": "Explain the difference between 'let', 'const', and 'var' in JavaScript. Provide examples for each.",
        "points": 35,
        "order_index": 4,
    },
]

SAMPLE_MODULES = [
    {
        "title": "Data Structures & Algorithms Fundamentals",
        "description": "Master the building blocks of efficient programming",
        "category": "dsa",
        "difficulty": "beginner",
        "total_lessons": 8,
        "estimated_time": 240,
        "xp_reward": 500,
        "is_published": True,
        "lessons": [
            {
                "title": "Introduction to Arrays",
                "content": "Learn about arrays, the fundamental data structure for storing collections of elements.",
                "lesson_type": "theory",
                "order_index": 1,
                "xp_reward": 50,
            },
            {
                "title": "Array Operations Challenge",
                "content": "Practice implementing common array operations like search, insert, and delete.",
                "lesson_type": "practice",
                "order_index": 2,
                "xp_reward": 75,
                "unlock_condition": {"prerequisite": 1},
            },
            {
                "title": "Linked Lists Fundamentals",
                "content": "Understand linked lists and their advantages over arrays.",
                "lesson_type": "theory",
                "order_index": 3,
                "xp_reward": 60,
                "unlock_condition": {"prerequisite": 2},
            },
        ],
    },
    {
        "title": "Advanced Algorithms & Problem Solving",
        "description": "Dive deep into algorithmic thinking and optimization",
        "category": "algorithms",
        "difficulty": "intermediate",
        "total_lessons": 12,
        "estimated_time": 360,
        "xp_reward": 800,
        "is_published": True,
        "lessons": [],
    },
]

# (title, description, level, total_questions, time_limit, passing_score, points_per_question)
SAMPLE_QUIZZES: Dict[str, List[tuple]] = {
    "DSA": [
        ("Arrays and Strings Basics", "Understanding arrays, strings, and basic operations", "beginner", 5, 10, 70, 20),
        ("Linked Lists and Stacks", "Working with linked lists and stack data structures", "intermediate", 8, 15, 75, 25),
        ("Trees and Graphs", "Advanced tree and graph algorithms", "advanced", 10, 20, 80, 30),
    ],
    "Java": [
        ("Java Basics", "Variables, data types, and basic syntax", "beginner", 6, 12, 70, 15),
        ("Object-Oriented Programming", "Classes, objects, inheritance, and polymorphism", "intermediate", 8, 18, 75, 25),
        ("Java Advanced Features", "Streams, lambda expressions, and concurrency", "advanced", 10, 25, 80, 35),
    ],
    "Python": [
        ("Python Fundamentals", "Variables, functions, and basic Python syntax", "beginner", 5, 10, 70, 18),
        ("Data Structures in Python", "Lists, dictionaries, sets, and tuples", "intermediate", 7, 15, 75, 22),
        ("Advanced Python", "Decorators, generators, and advanced concepts", "advanced", 10, 20, 80, 28),
    ],
}

SAMPLE_TOPICS = [
    {"name": "DSA", "description": "Data Structures and Algorithms fundamentals", "icon": "database", "color": "blue"},
    {"name": "Java", "description": "Java programming language concepts", "icon": "code2", "color": "orange"},
    {"name": "Python", "description": "Python programming language essentials", "icon": "brain", "color": "green"},
]

ARRAYS_QUIZ_QUESTIONS = [
    {
        "question": "What is the time complexity of accessing an element in an array by index?",
        "options": ["O(1)", "O(n)", "O(log n)", "O(n²)"],
        "correct_answer": "O(1)",
        "explanation": "Array elements can be accessed directly using their index in constant time.",
    },
    {
        "question": "Which of the following operations has O(n) time complexity in an array?",
        "options": ["Access by index", "Insert at beginning", "Update by index", "Get array length"],
        "correct_answer": "Insert at beginning",
        "explanation": "Inserting at the beginning requires shifting all existing elements, which takes O(n) time.",
    },
    {
        "question": "What is the maximum number of elements that can be stored in an array of size 10?",
        "options": ["9", "10", "11", "Unlimited"],
        "correct_answer": "10",
        "explanation": "An array of size 10 can store exactly 10 elements, indexed from 0 to 9.",
    },
    {
        "question": "Which method would you use to find the length of a string in most programming languages?",
        "options": ["size()", "length()", "count()", "len()"],
        "correct_answer": "length()",
        "explanation": "Most programming languages use length() method to get string length, though some use len().",
    },
    {
        "question": "What happens when you try to access an array element beyond its bounds?",
        "options": ["Returns null", "Returns 0", "Throws an exception", "Creates new element"],
        "correct_answer": "Throws an exception",
        "explanation": "Accessing array elements beyond bounds typically throws an IndexOutOfBoundsException or similar error.",
    },
]

SAMPLE_BADGES = [
    {
        "name": "First Steps",
        "description": "Complete your first quiz",
        "icon": "trophy",
        "color": "yellow",
        "requirement": {"type": "quiz_count", "value": 1},
        "points": 50,
    },
    {
        "name": "Quick Learner",
        "description": "Score 90% or higher on 3 quizzes",
        "icon": "star",
        "color": "purple",
        "requirement": {"type": "high_score_count", "value": 3, "threshold": 90},
        "points": 150,
    },
    {
        "name": "Consistent",
        "description": "Complete quizzes 5 days in a row",
        "icon": "target",
        "color": "green",
        "requirement": {"type": "streak", "value": 5},
        "points": 200,
    },
    {
        "name": "DSA Master",
        "description": "Complete all DSA quizzes with 80%+ average",
        "icon": "award",
        "color": "blue",
        "requirement": {"type": "topic_mastery", "topic": "DSA", "threshold": 80},
        "points": 300,
    },
]


async def seed_sample_data(storage: DatabaseStorage) -> bool:
    """
    Insert the sample data into an empty database.

    Args:
        storage: Storage bound to the transaction to seed in

    Returns:
        True if data was inserted, False if users already existed
    """
    if await storage.count_users():
        logger.debug("Database already has users, skipping sample data")
        return False

    demo = await storage.create_user(UserCreate(
        username=get_settings().DEMO_USERNAME,
        email="demo@example.com",
        password=encode_password("demo123"),
        role="student",
    ))
    await storage.create_user(UserCreate(
        username="admin",
        email="admin@example.com",
        password=encode_password("admin123"),
        role="admin",
    ))

    test = await storage.create_test(TestCreate(created_by=demo.id, **SAMPLE_TEST))
    for question in SAMPLE_QUESTIONS:
        await storage.create_question(QuestionCreate(test_id=test.id, **question))

    for module_data in SAMPLE_MODULES:
        values: Dict[str, Any] = {k: v for k, v in module_data.items() if k != "lessons"}
        module = await storage.create_learning_module(LearningModuleCreate(**values))
        for lesson in module_data["lessons"]:
            await storage.create_lesson(LessonCreate(module_id=module.id, **lesson))

    await storage.create_or_update_user_stats(demo.id, {
        "total_xp": 150,
        "level": 1,
        "streak": 3,
        "last_active_date": utcnow(),
        "badges": ["first_lesson", "quick_learner"],
        "achievements": ["completed_first_module"],
    })

    for topic_data in SAMPLE_TOPICS:
        topic = await storage.create_topic(TopicCreate(**topic_data))
        for title, description, level, total, time_limit, passing, points in SAMPLE_QUIZZES[topic.name]:
            quiz = await storage.create_quiz(QuizCreate(
                topic_id=topic.id,
                title=title,
                description=description,
                level=level,
                total_questions=total,
                time_limit=time_limit,
                passing_score=passing,
                points_per_question=points,
                is_published=True,
            ))
            if title == "Arrays and Strings Basics":
                for index, question in enumerate(ARRAYS_QUIZ_QUESTIONS, start=1):
                    await storage.create_quiz_question(QuizQuestionCreate(
                        quiz_id=quiz.id, order_index=index, **question
                    ))

    for badge in SAMPLE_BADGES:
        await storage.create_badge(BadgeCreate(**badge))

    logger.info("Inserted sample users, tests, learning modules, quizzes and badges")
    return True
