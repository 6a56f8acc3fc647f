"""Week-keyed pregnancy facts and due-date countdown math."""

from __future__ import annotations

from datetime import date

from models import BodyChangeFact, PlanningTip, ProgressFact, SizeComparison

FULL_TERM_WEEKS = 40
FIRST_SIZE_WEEK = 4
# Children further past due than this are treated as having left the digest.
POST_TERM_GRACE_DAYS = 14

_SIZE_ROWS: tuple[tuple[int, str, float, str, str], ...] = (
    (4, "poppy seed", 0.1, "less than 1g", "\U0001F331"),
    (5, "sesame seed", 0.2, "less than 1g", "\U0001F331"),
    (6, "lentil", 0.6, "less than 1g", "\U0001FAD8"),
    (7, "blueberry", 1.3, "less than 1g", "\U0001FAD0"),
    (8, "raspberry", 1.6, "about 1g", "\U0001FAD0"),
    (9, "cherry", 2.3, "about 2g", "\U0001F352"),
    (10, "strawberry", 3.1, "about 4g", "\U0001F353"),
    (11, "fig", 4.1, "about 7g", "\U0001F347"),
    (12, "lime", 5.4, "about 14g", "\U0001F34B"),
    (13, "peach", 7.4, "about 23g", "\U0001F351"),
    (14, "lemon", 8.7, "about 43g", "\U0001F34B"),
    (15, "apple", 10.1, "about 70g", "\U0001F34E"),
    (16, "avocado", 11.6, "about 100g", "\U0001F951"),
    (17, "pear", 13.0, "about 140g", "\U0001F350"),
    (18, "bell pepper", 14.2, "about 190g", "\U0001FAD1"),
    (19, "mango", 15.3, "about 240g", "\U0001F96D"),
    (20, "banana", 25.6, "about 300g", "\U0001F34C"),
    (21, "carrot", 26.7, "about 360g", "\U0001F955"),
    (22, "papaya", 27.8, "about 430g", "\U0001F348"),
    (23, "grapefruit", 28.9, "about 500g", "\U0001F34A"),
    (24, "ear of corn", 30.0, "about 600g", "\U0001F33D"),
    (25, "rutabaga", 34.6, "about 660g", "\U0001F954"),
    (26, "zucchini", 35.6, "about 760g", "\U0001F952"),
    (27, "cauliflower", 36.6, "about 875g", "\U0001F966"),
    (28, "eggplant", 37.6, "about 1kg", "\U0001F346"),
    (29, "butternut squash", 38.6, "about 1.15kg", "\U0001F383"),
    (30, "coconut", 39.9, "about 1.3kg", "\U0001F965"),
    (31, "pineapple", 41.1, "about 1.5kg", "\U0001F34D"),
    (32, "jicama", 42.4, "about 1.7kg", "\U0001F954"),
    (33, "celery bunch", 43.7, "about 1.9kg", "\U0001F96C"),
    (34, "cantaloupe", 45.0, "about 2.1kg", "\U0001F348"),
    (35, "honeydew melon", 46.2, "about 2.4kg", "\U0001F348"),
    (36, "romaine lettuce", 47.4, "about 2.6kg", "\U0001F96C"),
    (37, "Swiss chard bunch", 48.6, "about 2.9kg", "\U0001F96C"),
    (38, "leek", 49.8, "about 3.0kg", "\U0001F96C"),
    (39, "small watermelon", 50.7, "about 3.3kg", "\U0001F349"),
    (40, "watermelon", 51.2, "about 3.5kg", "\U0001F349"),
)

SIZE_COMPARISONS: dict[int, SizeComparison] = {
    week: SizeComparison(
        week=week,
        object=name,
        emoji=emoji,
        length_cm=length_cm,
        weight_description=weight,
    )
    for week, name, length_cm, weight, emoji in _SIZE_ROWS
}

MILESTONES: tuple[tuple[int, str], ...] = (
    (8, "First ultrasound window"),
    (12, "End of first trimester"),
    (13, "Second trimester begins"),
    (16, "You might feel movement soon"),
    (20, "Halfway there!"),
    (24, "Viability milestone"),
    (27, "Third trimester begins"),
    (28, "Third trimester"),
    (32, "Baby shower time"),
    (36, "Full term in one month"),
    (37, "Early term, baby could arrive any day"),
    (39, "Full term"),
    (40, "Due date week"),
)

DEFAULT_ENCOURAGEMENT = "Every day brings you closer to meeting your little one."

WEEKLY_ENCOURAGEMENTS: dict[int, str] = {
    4: "A tiny miracle is just beginning. Take it one day at a time.",
    5: "Your baby's heart is starting to form this week.",
    6: "Tiny arms and legs are budding. You're doing amazing.",
    7: "Baby's brain is growing rapidly. Rest when you need to.",
    8: "Fingers and toes are forming. What a journey you're on.",
    9: "Baby can make tiny movements now, even if you can't feel them yet.",
    10: "All major organs are formed. The foundation is set.",
    11: "Baby is starting to look more human-shaped. Almost out of the first trimester!",
    12: "The first trimester finish line is in sight. You made it through the toughest part.",
    13: "Welcome to the second trimester! Energy levels often improve from here.",
    14: "Baby might be making facial expressions. The adventure continues.",
    15: "Baby can sense light now. Things are getting exciting.",
    16: "You might start feeling those first little flutters soon.",
    17: "Baby's skeleton is hardening from cartilage to bone.",
    18: "Baby might be yawning and stretching in there. So cozy.",
    19: "Almost halfway! Take a moment to celebrate how far you've come.",
    20: "Halfway milestone! Baby can hear your voice now.",
    21: "Baby's movements are getting stronger. Such an incredible feeling.",
    22: "Baby's senses are developing rapidly. Talk and sing to them.",
    23: "Baby's face is fully formed. They look like a tiny human.",
    24: "A big milestone: baby has reached viability. You're incredible.",
    25: "Baby is gaining weight and getting stronger every day.",
    26: "Baby's eyes are opening. They're starting to see the world.",
    27: "Welcome to the third trimester! The home stretch.",
    28: "Baby is dreaming now. Sweet dreams, little one.",
    29: "Baby's bones are soaking up calcium. Keep up the good nutrition.",
    30: "Ten weeks to go. Baby is getting ready to meet you.",
    31: "Baby's brain is making billions of connections. Incredible.",
    32: "Baby is practicing breathing motions. Almost ready.",
    33: "Baby's immune system is developing. You're giving them a great start.",
    34: "Baby's lungs are maturing. Almost there.",
    35: "Baby is gaining about half a pound per week now.",
    36: "Full term is just around the corner. You've got this.",
    37: "Baby is officially early term. They could arrive any day.",
    38: "Baby is shedding the waxy coating. Getting ready for their debut.",
    39: "Full term! Baby is ready when they're ready.",
    40: "Due date week! Remember, only 5% of babies arrive on their due date.",
}

MATERNAL_CHANGES: dict[int, tuple[str, str]] = {
    4: ("You might notice a missed period and some light cramping.", "Start prenatal vitamins if you haven't already."),
    5: ("Morning sickness may begin. Fatigue is very common.", "Eat small, frequent meals to manage nausea."),
    6: ("Breast tenderness and frequent urination are typical.", "Wear a comfortable, supportive bra."),
    7: ("Nausea may intensify. Food aversions are normal.", "Ginger tea or crackers before getting up can help."),
    8: ("Your uterus is about the size of a large orange now.", "Stay hydrated: aim for 8-10 glasses of water daily."),
    9: ("Your waistline may start to thicken slightly.", "Gentle walks can help with fatigue and mood."),
    10: ("Visible veins may appear as blood volume increases.", "Increase iron-rich foods to support blood production."),
    11: ("Bloating and gas are common this week.", "Eat slowly and avoid carbonated drinks."),
    12: ("Morning sickness often starts to ease around now.", "This is a great week to celebrate: you made it through the first trimester!"),
    13: ("Energy levels often improve as you enter the second trimester.", "Take advantage of the energy boost for light exercise."),
    14: ("Your appetite may return. The baby bump may become visible.", "Focus on nutrient-dense foods: protein, iron, calcium."),
    15: ("Nasal congestion and occasional nosebleeds can occur.", "Use a humidifier at night for congestion relief."),
    16: ("You may feel the first flutters of movement (quickening).", "Sit or lie quietly to notice those first tiny movements."),
    17: ("Your center of gravity is shifting. Balance may feel off.", "Wear flat, supportive shoes when possible."),
    18: ("Leg cramps and mild swelling in feet may begin.", "Stretch your calves before bed. Elevate feet when resting."),
    19: ("Skin changes like darkening of the linea alba are common.", "Wear sunscreen: pregnancy hormones increase sun sensitivity."),
    20: ("Your uterus has reached your navel. Halfway there!", "Consider prenatal yoga or swimming for gentle exercise."),
    21: ("Stretch marks may start to appear. Heartburn can increase.", "Keep skin moisturized. Eat smaller meals for heartburn."),
    22: ("Braxton Hicks contractions may start as your body practices.", "Stay hydrated: dehydration can trigger Braxton Hicks."),
    23: ("Swollen gums and occasional bleeding when brushing are normal.", "Keep up dental hygiene and see your dentist if needed."),
    24: ("Back pain may increase as baby grows.", "Practice good posture and consider a pregnancy pillow."),
    25: ("Trouble sleeping is common. Heartburn may worsen at night.", "Sleep on your left side with a pillow between your knees."),
    26: ("Baby's kicks are getting stronger and more regular.", "Start counting kicks and note patterns of activity."),
    27: ("Shortness of breath may begin as your uterus presses up.", "Slow down and take breaks. This is completely normal."),
    28: ("Swelling in ankles and feet may increase.", "Reduce salt intake and prop your feet up when resting."),
    29: ("Frequent urination returns as baby presses on your bladder.", "Don't reduce water intake, just plan for bathroom breaks."),
    30: ("Fatigue returns. Your body is working hard growing baby.", "Nap when you can. Accept help from others."),
    31: ("Braxton Hicks may become more noticeable.", "Practice breathing techniques for labor preparation."),
    32: ("Heartburn and shortness of breath may peak.", "Eat smaller meals, and prop yourself up at night."),
    33: ("Baby may drop lower (lightening), easing breathing.", "Pelvic floor exercises can help with increased pressure."),
    34: ("Pelvic pressure increases. Waddle walk is normal.", "Warm baths can soothe aches. Avoid very hot water."),
    35: ("Colostrum may begin leaking from breasts.", "Nursing pads can help. This is your body preparing."),
    36: ("You may gain about a pound per week now.", "Finalize your hospital bag and birth plan."),
    37: ("Cervix may begin to dilate. Nesting instinct kicks in.", "Channel nesting energy wisely; rest is important too."),
    38: ("Increased vaginal discharge and mucus plug loss are normal.", "Know the signs of labor vs. false labor."),
    39: ("Contractions may become more regular. Baby drops further.", "Time any contractions. Call your provider if they're 5 min apart."),
    40: ("Due date week. Only 5% of babies arrive right on time.", "Stay patient and comfortable. Your baby is almost here."),
}

PLANNING_TIPS: tuple[PlanningTip, ...] = (
    PlanningTip(5, "health", "Schedule your first prenatal appointment"),
    PlanningTip(6, "self_care", "Start a daily prenatal vitamin if you haven't already"),
    PlanningTip(8, "health", "Your first ultrasound may be coming up. Exciting!"),
    PlanningTip(9, "self_care", "Rest is important right now. Listen to your body."),
    PlanningTip(10, "social", "Decide when you'd like to share the news with close family"),
    PlanningTip(11, "health", "Genetic screening tests are often offered around now"),
    PlanningTip(12, "social", "Many families start sharing the news after the first trimester"),
    PlanningTip(13, "shopping", "Start browsing maternity clothes; comfort matters"),
    PlanningTip(14, "health", "Great time to start gentle prenatal exercise if cleared by your provider"),
    PlanningTip(16, "preparation", "Start thinking about childcare options; waitlists fill up fast"),
    PlanningTip(18, "health", "Anatomy scan usually happens between weeks 18-22"),
    PlanningTip(20, "preparation", "Start your baby registry; halfway is a great time to begin"),
    PlanningTip(22, "preparation", "Research pediatricians in your area"),
    PlanningTip(24, "preparation", "Consider signing up for a childbirth class"),
    PlanningTip(25, "health", "Glucose screening test is usually done around weeks 24-28"),
    PlanningTip(26, "preparation", "Start thinking about your birth plan"),
    PlanningTip(28, "preparation", "Begin setting up the nursery. Nesting mode activated!"),
    PlanningTip(29, "health", "Count baby's kicks daily; 10 movements in 2 hours is typical"),
    PlanningTip(30, "preparation", "Research car seat options and practice installation"),
    PlanningTip(31, "preparation", "Write or finalize your birth plan"),
    PlanningTip(32, "shopping", "Stock up on newborn essentials: diapers, onesies, burp cloths"),
    PlanningTip(33, "social", "Baby shower time! Enjoy celebrating with loved ones"),
    PlanningTip(34, "preparation", "Pre-register at your hospital or birth center"),
    PlanningTip(35, "preparation", "Install the car seat and have it inspected"),
    PlanningTip(36, "preparation", "Pack your hospital bag. It's almost go-time!"),
    PlanningTip(37, "preparation", "Prep some freezer meals for postpartum recovery"),
    PlanningTip(38, "self_care", "Rest, relax, and soak in these last days. You're ready."),
    PlanningTip(39, "health", "Know the signs of labor: timing contractions, water breaking"),
    PlanningTip(40, "self_care", "Due dates are estimates. Baby will come when ready. You've got this!"),
)


def parse_due_date(raw: str | None) -> date | None:
    """Parse a stored ISO date (or datetime) string, returning None if unusable."""
    if raw is None:
        return None
    text = str(raw).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def compute_progress(due_date: date, today: date) -> ProgressFact | None:
    """Return countdown facts, or None when the week is outside the digest range."""
    days_until_due = (due_date - today).days
    if days_until_due < -POST_TERM_GRACE_DAYS:
        return None

    days_remaining = max(0, days_until_due)
    weeks_remaining = days_remaining // 7
    week = FULL_TERM_WEEKS - weeks_remaining
    if week < 1:
        return None
    week = min(FULL_TERM_WEEKS, week)

    return ProgressFact(
        gestational_week=week,
        weeks_remaining=weeks_remaining,
        days_remaining=days_remaining,
        trimester=trimester_for_week(week),
        size=size_comparison_for_week(week),
        encouragement=WEEKLY_ENCOURAGEMENTS.get(week, DEFAULT_ENCOURAGEMENT),
        milestone=milestone_for_week(week),
    )


def trimester_for_week(week: int) -> int:
    if week <= 12:
        return 1
    if week <= 26:
        return 2
    return 3


def milestone_for_week(week: int) -> str:
    """Current or upcoming milestone label."""
    for milestone_week, label in MILESTONES:
        if milestone_week >= week:
            return label
    return "Almost there!"


def size_comparison_for_week(week: int) -> SizeComparison | None:
    return SIZE_COMPARISONS.get(_clamp_week(week))


def body_change_for_week(week: int) -> BodyChangeFact | None:
    clamped = _clamp_week(week)
    entry = MATERNAL_CHANGES.get(clamped)
    if entry is None:
        return None
    body, tip = entry
    return BodyChangeFact(week=clamped, body=body, tip=tip)


def representative_tip(week: int, look_ahead_weeks: int = 1) -> PlanningTip | None:
    """Earliest planning tip in the [week, week + look_ahead] window."""
    start = max(FIRST_SIZE_WEEK, week)
    end = min(FULL_TERM_WEEKS, week + look_ahead_weeks)
    for tip in PLANNING_TIPS:
        if start <= tip.week <= end:
            return tip
    return None


def _clamp_week(week: int) -> int:
    return max(FIRST_SIZE_WEEK, min(FULL_TERM_WEEKS, week))
