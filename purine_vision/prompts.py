PURINE_ANALYSIS_PROMPT = """
Analyze the food in this image and return the result as JSON.

Requirements:
1. Identify the actual edible food (the ingredients themselves). Do not identify containers, plates, decorations or background.
2. Estimate the purine content of each food in mg/100g.
3. Classify: high purine >150, medium purine 50-150, low purine <50.
4. Coordinates (important):
   - Format: {x1, y1, x2, y2}, in pixels of the original image size
   - Frame the food itself, not the container, decorations or background
   - If the food is in a container, frame only the food
   - If the same food appears in several regions, return a separate entry for each region

Return JSON in this format:
{
  "high_purine_foods": [
    {
      "food_name": "food name",
      "purine_value": 180,
      "coordinates": {"x1": 100, "y1": 150, "x2": 300, "y2": 250},
      "description": "short description of the food"
    }
  ],
  "medium_purine_foods": [
    {
      "food_name": "food name",
      "purine_value": 120,
      "coordinates": {"x1": 350, "y1": 200, "x2": 500, "y2": 350},
      "description": "short description of the food"
    }
  ],
  "low_purine_foods": [
    {
      "food_name": "food name",
      "purine_value": 30,
      "coordinates": {"x1": 100, "y1": 150, "x2": 300, "y2": 250},
      "description": "short description of the food (optional)"
    }
  ]
}

Return only the JSON, with no other text.
"""
